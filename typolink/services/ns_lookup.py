import asyncio
import logging
import socket
from typing import List, Optional
import dns.exception
import dns.resolver
import httpx
from ..config import settings
logger = logging.getLogger(__name__)
DNS_TYPE_NS = 2

class DNSNameServerLookup:
    """NS records through the system resolver. The blocking query runs in the default executor."""

    def __init__(self, timeout: float=5, resolver: Optional[dns.resolver.Resolver]=None):
        self.timeout = timeout
        self.resolver = resolver or dns.resolver.Resolver()
        self.resolver.timeout = timeout
        self.resolver.lifetime = timeout

    async def lookup(self, domain: str) -> List[str]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._get_nameservers, domain)

    def _get_nameservers(self, domain: str) -> List[str]:
        if not domain or not isinstance(domain, str):
            return []
        try:
            ns_records = self.resolver.resolve(domain, 'NS')
            return [str(ns) for ns in ns_records]
        except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
            return []
        except dns.resolver.NoNameservers as e:
            # SERVFAIL / REFUSED from every server says nothing about the domain
            raise RuntimeError(f'NS lookup for {domain} failed: no nameserver answered') from e
        except (dns.exception.Timeout, socket.gaierror) as e:
            raise TimeoutError(f'NS lookup for {domain} timed out') from e

class DoHNameServerLookup:
    """NS records from a JSON DNS-over-HTTPS endpoint (Google / Cloudflare style ``?name=&type=NS``)."""

    def __init__(self, url: Optional[str]=None, timeout: float=5, client: Optional[httpx.AsyncClient]=None):
        self.url = url or settings.DOH_URL
        self.timeout = timeout
        self._client = client

    async def lookup(self, domain: str) -> List[str]:
        params = {'name': domain, 'type': 'NS'}
        headers = {'accept': 'application/dns-json'}
        if self._client is not None:
            response = await self._client.get(self.url, params=params, headers=headers, timeout=self.timeout)
            return self._parse(response)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(self.url, params=params, headers=headers)
            return self._parse(response)

    def _parse(self, response: httpx.Response) -> List[str]:
        response.raise_for_status()
        result = response.json()
        # 0 = NOERROR, 3 = NXDOMAIN; anything else is a resolver failure
        if result.get('Status', 0) not in (0, 3):
            raise RuntimeError(f"DoH lookup failed with DNS status {result.get('Status')}")
        return [a.get('data', '') for a in result.get('Answer', []) if a.get('type') == DNS_TYPE_NS]

def make_ns_lookup(backend: Optional[str]=None, timeout: Optional[float]=None):
    backend = (backend or settings.NS_BACKEND).lower()
    timeout = settings.NS_TIMEOUT if timeout is None else timeout
    if backend == 'dns':
        return DNSNameServerLookup(timeout=timeout)
    if backend == 'doh':
        return DoHNameServerLookup(timeout=timeout)
    raise ValueError(f'Unknown NS backend: {backend!r} (expected "dns" or "doh")')
