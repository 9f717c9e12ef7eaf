from __future__ import annotations

import logging

import dns.exception
import dns.resolver

log = logging.getLogger(__name__)


def resolve_hostname_with_dns(hostname: str, dns_server: str, timeout_s: float = 5.0) -> str | None:
    """Resolve hostname using a specific DNS server."""
    if not dns_server or not hostname:
        return None

    resolver = dns.resolver.Resolver(configure=False)
    resolver.nameservers = [dns_server]
    resolver.timeout = timeout_s
    resolver.lifetime = timeout_s

    try:
        answers = resolver.resolve(hostname, "A")
        if answers:
            return str(answers[0])
    except dns.resolver.NXDOMAIN:
        log.warning("DNS: host '%s' not found on %s", hostname, dns_server)
    except dns.resolver.NoAnswer:
        log.warning("DNS: %s returned no A record for '%s'", dns_server, hostname)
    except dns.resolver.NoNameservers:
        log.warning("DNS: all nameservers (%s) failed for '%s'", dns_server, hostname)
    except dns.exception.Timeout:
        log.warning("DNS: timeout querying %s for '%s'", dns_server, hostname)

    return None
