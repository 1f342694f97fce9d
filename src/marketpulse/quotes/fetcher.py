"""Batched quote fetching with provider fallback and a read-through cache."""

import asyncio
from typing import Dict, Iterable, List, Optional

import aiohttp

from ..config.logging import get_logger
from ..exceptions import QuoteFetchError
from .cache import TTLCache, request_signature
from .models import ProviderPayload, Quote
from .providers import PROVIDERS, ProviderSpec

logger = get_logger(__name__)


class UpstreamStatusError(Exception):
    """Upstream answered with a non-2xx status."""

    def __init__(self, provider: str, status: int):
        super().__init__(f"{provider} returned HTTP {status}")
        self.provider = provider
        self.status = status


class QuoteFetcher:
    """
    Fetch quotes for one or many symbols.

    Providers are tried in order until one returns at least one quote. The
    fetcher never retries a failed batch; callers poll again on their own
    cadence.
    """

    def __init__(
        self,
        providers: Optional[List[str]] = None,
        api_keys: Optional[Dict[str, Optional[str]]] = None,
        timeout_seconds: float = 10.0,
        cache: Optional[TTLCache] = None,
        endpoint_overrides: Optional[Dict[str, str]] = None,
    ):
        self.provider_names = providers or ["yahoo"]
        self._api_keys = api_keys or {}
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.cache = cache if cache is not None else TTLCache(ttl_seconds=30.0)
        self._endpoint_overrides = endpoint_overrides or {}
        self.logger = logger.bind(component="quote_fetcher")

    @classmethod
    def from_settings(cls, settings) -> "QuoteFetcher":
        return cls(
            providers=settings.quote_providers,
            api_keys=settings.get_api_keys(),
            timeout_seconds=settings.request_timeout_seconds,
            cache=TTLCache(ttl_seconds=settings.quote_cache_ttl_seconds),
            endpoint_overrides={"proxy": settings.proxy_quote_url},
        )

    async def get_quotes(self, symbols: Iterable[str]) -> Dict[str, Quote]:
        """
        Get quotes for a batch of symbols.

        Args:
            symbols: Ticker symbols, any case

        Returns:
            Mapping of upper-cased symbol to Quote. Every requested symbol is
            present; symbols the upstream did not return map to an
            unavailable placeholder with price 0.

        Raises:
            QuoteFetchError: If every provider failed for the batch
        """
        signature = request_signature(symbols)
        if not signature:
            return {}

        cached = self.cache.get(signature)
        if cached is not None:
            return dict(cached)

        fetched = await self._fetch_batch(list(signature))

        result = {
            symbol: fetched.get(symbol) or Quote.unavailable(symbol)
            for symbol in signature
        }
        unavailable = [s for s, q in result.items() if not q.is_available]
        if unavailable:
            self.logger.warning(
                "Some symbols missing from upstream response",
                unavailable=unavailable,
                returned=len(result) - len(unavailable),
            )

        self.cache.set(signature, result)
        return dict(result)

    async def get_quote(self, symbol: str) -> Quote:
        """Get a single quote; see get_quotes."""
        quotes = await self.get_quotes([symbol])
        return quotes[symbol.strip().upper()]

    def _active_providers(self) -> List[ProviderSpec]:
        specs = []
        for name in self.provider_names:
            spec = PROVIDERS[name]
            if spec.requires_key and not self._api_keys.get(name):
                continue
            specs.append(spec)
        return specs

    async def _fetch_batch(self, symbols: List[str]) -> Dict[str, Quote]:
        errors = []
        responded = False

        async with aiohttp.ClientSession(timeout=self._timeout) as session:
            for spec in self._active_providers():
                try:
                    quotes = await self._fetch_from(session, spec, symbols)
                except Exception as e:
                    errors.append(f"{spec.name}: {e}")
                    self.logger.warning(
                        "Quote provider failed",
                        provider=spec.name,
                        symbols=symbols,
                        error=str(e),
                    )
                    continue

                responded = True
                if quotes:
                    self.logger.info(
                        "Quotes fetched",
                        provider=spec.name,
                        requested=len(symbols),
                        returned=len(quotes),
                    )
                    return quotes

        if responded:
            return {}

        raise QuoteFetchError(
            symbols, "; ".join(errors) if errors else "no quote provider available"
        )

    async def _fetch_from(
        self, session: aiohttp.ClientSession, spec: ProviderSpec, symbols: List[str]
    ) -> Dict[str, Quote]:
        if spec.batch:
            return await self._request(session, spec, symbols)

        results = await asyncio.gather(
            *(self._request(session, spec, [symbol]) for symbol in symbols),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, Exception)]
        if failures and len(failures) == len(results):
            raise failures[0]

        # A single-symbol failure only leaves that symbol unavailable
        quotes: Dict[str, Quote] = {}
        for result in results:
            if not isinstance(result, Exception):
                quotes.update(result)
        return quotes

    async def _request(
        self, session: aiohttp.ClientSession, spec: ProviderSpec, symbols: List[str]
    ) -> Dict[str, Quote]:
        url = (self._endpoint_overrides.get(spec.name) or spec.url).format(
            symbol=symbols[0]
        )
        params = spec.build_params(symbols, self._api_keys.get(spec.name))

        async with session.get(url, params=params, headers=spec.headers) as response:
            if response.status != 200:
                raise UpstreamStatusError(spec.name, response.status)
            if spec.text_response:
                body = await response.text()
            else:
                body = await response.json(content_type=None)

        return spec.parse(ProviderPayload(spec.provider, body), symbols)
