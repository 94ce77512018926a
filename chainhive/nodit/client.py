"""Async Nodit Web3 data API and JSON-RPC client.

Every request passes, from the outside in, through:
circuit breaker -> retry executor (per-attempt timeout) -> rate limiter -> httpx.
JSON-RPC calls additionally fall back across the chain's endpoints in order.

httpx exceptions and error payloads are translated here into the
``RemoteCallError`` variants the retry classifier understands.
"""

import hashlib
import hmac
import itertools
import logging
import re
from typing import TYPE_CHECKING, Any, Optional, Union

import httpx

from ..resilience.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from ..resilience.errors import (
    HTTPStatusError,
    NetworkError,
    RemoteCallError,
    RPCError,
    classify_error,
)
from ..resilience.fallback import FallbackExecutor
from ..resilience.rate_limiter import SlidingWindowRateLimiter
from ..resilience.retry import RetryConfig, RetryExecutor
from .chains import get_chain

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://web3.nodit.io/v1"
DEFAULT_USER_AGENT = "ChainHive/1.0.0"

# Path segments that identify a resource rather than a route: hex ids, numbers, long addresses
_PARAM_SEGMENT = re.compile(r"^(0x[0-9a-fA-F]*|\d+|[A-Za-z0-9]{25,})$")


def _route_template(endpoint: str) -> str:
    """Replace address-like path segments so metric labels stay bounded."""
    segments = endpoint.strip("/").split("/")
    return "/" + "/".join(":param" if _PARAM_SEGMENT.match(s) else s for s in segments)


def _is_client_error(error: Exception) -> bool:
    return classify_error(error).category == "client"


def _member(body: Any, key: str, endpoint: str) -> list[dict[str, Any]]:
    if not isinstance(body, dict):
        raise RemoteCallError(f"Malformed response from {endpoint}: expected a JSON object")
    return body.get(key) or []


def _hex_quantity(result: Any, method: str) -> int:
    if not isinstance(result, str):
        raise RPCError(f"Malformed {method} result: {result!r}")
    try:
        return int(result, 16)
    except ValueError:
        raise RPCError(f"Malformed {method} result: {result!r}") from None


def _error_detail(response: httpx.Response) -> tuple[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or "Unknown error", None
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or "Unknown error"), body
    return "Unknown error", body


class NoditClient:
    """Client for the Nodit Web3 data API and chain JSON-RPC nodes.

    Usage:
        settings = load_settings()
        async with NoditClient.from_settings(settings) as client:
            tokens = await client.get_token_balances("0xabc...", "ethereum")
            wei = await client.get_native_balance("0xabc...", "kairos")
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        *,
        retry_executor: Optional[RetryExecutor] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        rate_limiter: Optional[SlidingWindowRateLimiter] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        rpc_urls: Optional[dict[str, list[str]]] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        webhook_secret: Optional[str] = None,
        breaker_config: Optional[CircuitBreakerConfig] = None,
    ):
        """Initialize Nodit client.

        Args:
            api_key: Nodit API key sent as X-API-KEY
            base_url: Data API base URL
            retry_executor: Retry policy applied to every request
            circuit_breaker: Breaker guarding the data API
            rate_limiter: Limiter shared by all requests of this client
            http_client: Pre-built httpx client (not closed by this client)
            rpc_urls: Per-chain RPC endpoint overrides, primary first
            user_agent: User-Agent header value
            webhook_secret: Secret for webhook signature verification
            breaker_config: Config for the per-chain RPC breakers
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.retry_executor = retry_executor or RetryExecutor()
        self.fallback_executor = FallbackExecutor(self.retry_executor)
        self.breaker_config = breaker_config or CircuitBreakerConfig()
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            "nodit_api", self.breaker_config, excluded=_is_client_error
        )
        self.rate_limiter = rate_limiter or SlidingWindowRateLimiter(name="nodit")
        self.rpc_urls = rpc_urls or {}
        self.user_agent = user_agent
        self.webhook_secret = webhook_secret
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient()
        self._rpc_breakers: dict[str, CircuitBreaker] = {}
        self._rpc_ids = itertools.count(1)

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "NoditClient":
        """Build a client wired from application settings."""
        breaker_config = CircuitBreakerConfig.from_settings(settings)
        return cls(
            api_key=settings.nodit_api_key,
            base_url=settings.nodit_base_url,
            retry_executor=RetryExecutor(RetryConfig.from_settings(settings)),
            rate_limiter=SlidingWindowRateLimiter.from_settings(settings, name="nodit"),
            http_client=http_client,
            rpc_urls=settings.rpc_urls,
            user_agent=settings.user_agent,
            webhook_secret=settings.nodit_webhook_secret,
            breaker_config=breaker_config,
        )

    async def __aenter__(self) -> "NoditClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    # ==================== TRANSPORT ====================

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-API-KEY": self.api_key,
            "User-Agent": self.user_agent,
        }

    async def _send(
        self,
        method: str,
        url: str,
        params: Optional[dict[str, Any]] = None,
        payload: Any = None,
    ) -> Any:
        """Single HTTP exchange; failures come out as RemoteCallError variants."""
        try:
            response = await self._http.request(
                method, url, headers=self._headers(), params=params, json=payload
            )
        except httpx.TimeoutException as e:
            raise NetworkError(f"Request timeout: {method} {url}") from e
        except httpx.TransportError as e:
            raise NetworkError(f"Network error: {e}") from e

        if response.is_error:
            detail, body = _error_detail(response)
            raise HTTPStatusError(
                f"API request failed: {response.status_code} {response.reason_phrase} - {detail}",
                response.status_code,
                data=body,
            )

        try:
            return response.json()
        except ValueError as e:
            raise RemoteCallError(f"Invalid JSON in response from {url}") from e

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        params: Optional[dict[str, Any]] = None,
        payload: Any = None,
        context: Optional[str] = None,
    ) -> Any:
        """Call the data API with breaker, retry and rate limiting.

        Args:
            method: HTTP method
            endpoint: Path relative to base_url
            params: Query parameters
            payload: JSON body
            context: Label for logs and metrics (defaults to method and route template)

        Returns:
            Decoded JSON response
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        label = context or f"nodit {method} {_route_template(endpoint)}"

        async def attempt() -> Any:
            return await self._send(method, url, params=params, payload=payload)

        return await self.circuit_breaker.execute(
            lambda: self.retry_executor.call_with_retry(
                attempt, label, before_attempt=self.rate_limiter.check_limit
            )
        )

    async def get(self, endpoint: str, params: Optional[dict[str, Any]] = None, **kwargs) -> Any:
        return await self.request("GET", endpoint, params=params, **kwargs)

    async def post(self, endpoint: str, payload: Any = None, **kwargs) -> Any:
        return await self.request("POST", endpoint, payload=payload, **kwargs)

    # ==================== DATA API ====================

    async def get_token_balances(self, address: str, chain: str) -> list[dict[str, Any]]:
        """Token balances held by ``address`` on ``chain``."""
        get_chain(chain)
        endpoint = f"/{chain}/address/{address}/tokens"
        response = await self.get(endpoint, context=f"nodit tokens {chain}")
        return _member(response, "tokens", endpoint)

    async def get_nfts(self, address: str, chain: str) -> list[dict[str, Any]]:
        """NFTs held by ``address`` on ``chain``."""
        get_chain(chain)
        endpoint = f"/{chain}/address/{address}/nfts"
        response = await self.get(endpoint, context=f"nodit nfts {chain}")
        return _member(response, "nfts", endpoint)

    async def get_transactions(
        self,
        address: str,
        chain: str,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Recent transactions of ``address`` on ``chain``, newest first."""
        get_chain(chain)
        endpoint = f"/{chain}/address/{address}/transactions"
        response = await self.get(
            endpoint, params={"limit": limit}, context=f"nodit transactions {chain}"
        )
        return _member(response, "transactions", endpoint)

    # ==================== JSON-RPC ====================

    def rpc_urls_for(self, chain: str) -> list[str]:
        """RPC endpoints for a chain, primary first; configured overrides win."""
        config = get_chain(chain)
        urls = self.rpc_urls.get(chain) or list(config.rpc_urls)
        if not urls:
            kind = "EVM" if config.is_evm else "non-EVM"
            raise ValueError(f"No JSON-RPC endpoints for {kind} chain: {chain}")
        return urls

    def _rpc_breaker(self, chain: str) -> CircuitBreaker:
        breaker = self._rpc_breakers.get(chain)
        if breaker is None:
            breaker = CircuitBreaker(f"rpc_{chain}", self.breaker_config, excluded=_is_client_error)
            self._rpc_breakers[chain] = breaker
        return breaker

    async def _rpc_once(self, url: str, method: str, params: list[Any]) -> Any:
        body = await self._send(
            "POST",
            url,
            payload={"jsonrpc": "2.0", "id": next(self._rpc_ids), "method": method, "params": params},
        )
        error = body.get("error") if isinstance(body, dict) else None
        if error and not isinstance(error, dict):
            raise RPCError(str(error))
        if error:
            raise RPCError(
                str(error.get("message", "RPC error")),
                code=error.get("code"),
                data=error.get("data"),
            )
        if not isinstance(body, dict) or "result" not in body:
            raise RemoteCallError(f"Malformed JSON-RPC response from {url}")
        return body["result"]

    async def rpc_call(self, chain: str, method: str, params: Optional[list[Any]] = None) -> Any:
        """JSON-RPC call with fallback across the chain's endpoints.

        Args:
            chain: Chain id (e.g. "ethereum", "kairos")
            method: RPC method (e.g. "eth_blockNumber")
            params: Positional parameters

        Returns:
            The ``result`` member of the response
        """
        params = params or []
        operations = [
            (lambda url=url: self._rpc_once(url, method, params))
            for url in self.rpc_urls_for(chain)
        ]
        return await self._rpc_breaker(chain).execute(
            lambda: self.fallback_executor.call_with_fallback(
                operations,
                f"rpc {chain} {method}",
                before_attempt=self.rate_limiter.check_limit,
            )
        )

    async def get_native_balance(self, address: str, chain: str) -> int:
        """Native coin balance in the smallest unit (wei)."""
        result = await self.rpc_call(chain, "eth_getBalance", [address, "latest"])
        return _hex_quantity(result, "eth_getBalance")

    async def get_block_number(self, chain: str) -> int:
        result = await self.rpc_call(chain, "eth_blockNumber")
        return _hex_quantity(result, "eth_blockNumber")

    # ==================== WEBHOOKS ====================

    def verify_webhook_signature(
        self,
        payload: Union[bytes, str],
        signature: str,
        secret: Optional[str] = None,
    ) -> bool:
        """Check a webhook's HMAC-SHA256 hex signature.

        Args:
            payload: Raw request body
            signature: Hex digest sent by Nodit
            secret: Shared secret (defaults to the configured webhook secret)

        Raises:
            ValueError: If no secret is available
        """
        secret = secret or self.webhook_secret
        if not secret:
            raise ValueError("Webhook secret is not configured")
        if isinstance(payload, str):
            payload = payload.encode("utf-8")

        expected = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, signature.strip().lower())
