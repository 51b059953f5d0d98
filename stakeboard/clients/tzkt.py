"""TzKT API client for bakery staking and stXTZ proxy operations.

All feed queries go through fetch_all_pages(), which walks limit/offset
pages until a short page comes back. A failed page abandons the whole feed.
"""
from __future__ import annotations

import logging
from typing import Any, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from stakeboard.config import BakeryConfig, ProxyConfig, TzktConfig
from stakeboard.errors import DetailLookupError, TransportError
from stakeboard.models.tzkt import BakeryOperation, ProxyTransaction, TokenHolder

log = logging.getLogger("stakeboard")

ModelT = TypeVar("ModelT", bound=BaseModel)


class TzktClient:
    def __init__(
        self,
        config: TzktConfig | None = None,
        bakery: BakeryConfig | None = None,
        proxy: ProxyConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or TzktConfig()
        self.bakery = bakery or BakeryConfig()
        self.proxy = proxy or ProxyConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._closed = False
        self.request_count = 0

    async def __aenter__(self) -> "TzktClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def client(self) -> httpx.AsyncClient:
        if self._closed:
            raise RuntimeError("TzktClient is closed")
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                headers={"Accept": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def fetch_all_pages(
        self,
        path: str,
        params: dict[str, Any],
        page_size: int | None = None,
    ) -> list[dict]:
        """Fetch every page of a filtered listing.

        Args:
            path: API path, e.g. "/v1/operations/staking"
            params: Filter predicates; limit/offset are added here.
            page_size: Records per page. Defaults to config.page_size.

        Returns:
            Concatenation of all pages in server order.

        Raises:
            TransportError: if any page request fails.
        """
        page_size = page_size or self.config.page_size
        records: list[dict] = []
        offset = 0

        while True:
            page = await self._get_page(
                path, {**params, "limit": page_size, "offset": offset},
            )
            records.extend(page)

            if len(page) < page_size:
                break

            offset += page_size

        log.debug(f"{path}: {len(records)} records in {offset // page_size + 1} page(s)")
        return records

    async def _get_page(self, path: str, params: dict[str, Any]) -> list[dict]:
        try:
            resp = await self.client.get(path, params=params)
            self.request_count += 1
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as e:
            raise TransportError(f"GET {path} failed: {e}") from e
        except ValueError as e:
            raise TransportError(f"GET {path} returned invalid JSON: {e}") from e

        if not isinstance(data, list):
            raise TransportError(f"GET {path} returned {type(data).__name__}, expected a list")
        return data

    async def fetch_bakery_operations(self) -> list[BakeryOperation]:
        """Staking operations delegated to the tracked baker."""
        raw = await self.fetch_all_pages(
            "/v1/operations/staking",
            {
                "baker": self.bakery.baker_address,
                "select": "level,timestamp,action,amount",
                "action.in": ",".join(self.bakery.actions),
            },
        )
        log.info(f"Fetched {len(raw)} total bakery records")
        return _parse_records(raw, BakeryOperation)

    async def fetch_proxy_transactions(self) -> list[ProxyTransaction]:
        """Applied calls to the stXTZ proxy contract."""
        raw = await self.fetch_all_pages(
            "/v1/operations/transactions",
            {
                "status": "applied",
                "target": self.proxy.contract_address,
                "entrypoint.in": ",".join(self.proxy.entrypoints),
            },
        )
        log.info(f"Fetched {len(raw)} total stXTZ records")
        return _parse_records(raw, ProxyTransaction)

    async def fetch_token_holders(self) -> list[TokenHolder]:
        """Current non-zero stXTZ balances."""
        raw = await self.fetch_all_pages(
            "/v1/tokens/balances",
            {
                "token.contract": self.proxy.token_contract,
                "balance.gt": 0,
                "select": "account,balance",
            },
        )
        log.info(f"Fetched {len(raw)} stXTZ holders")
        return _parse_records(raw, TokenHolder)

    async def get_transaction_detail(self, op_hash: str, counter: int) -> list[Any]:
        """Full transaction record(s), including post-execution storage.

        Raises:
            DetailLookupError: on network failure, non-2xx status or bad JSON.
        """
        path = f"/v1/operations/transactions/{op_hash}/{counter}"
        try:
            resp = await self.client.get(path)
            self.request_count += 1
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            raise DetailLookupError(
                f"Failed to fetch {path}: {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise DetailLookupError(f"Failed to fetch {path}: {e}") from e
        except ValueError as e:
            raise DetailLookupError(f"Invalid JSON from {path}: {e}") from e

        return data if isinstance(data, list) else [data]

    async def close(self) -> None:
        self._closed = True
        if self._client and not self._client.is_closed:
            await self._client.aclose()


def _parse_records(raw: list[dict], model: Type[ModelT]) -> list[ModelT]:
    parsed: list[ModelT] = []
    for record in raw:
        try:
            parsed.append(model(**record))
        except (ValidationError, TypeError) as e:
            log.error(f"Failed to parse {model.__name__}: {e}")
            log.debug(f"{model.__name__} data: {record}")
    return parsed
