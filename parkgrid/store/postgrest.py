"""Slot store backed by a Supabase/PostgREST table."""

import logging
import os
from collections.abc import Iterable, Sequence
from typing import Any

import httpx
from pydantic_core import to_jsonable_python

from ..exceptions import ConfigurationError, ReadFailed, WriteFailed
from ..models import Slot, SlotPatch
from ..utils import COL_ID, DEFAULT_HEADERS, normalize_ids
from .base import SlotStore
from .predicates import Predicate

logger = logging.getLogger(__name__)


class PostgrestSlotStore(SlotStore):
    """Slot store that talks to a PostgREST endpoint (e.g. Supabase).

    Expects a table with columns ``id`` (int primary key), ``label`` (text),
    ``area`` (text), ``occupant`` (jsonb), ``lease_holder`` (text) and
    ``lease_heartbeat`` (timestamptz). PostgREST applies each PATCH in its own
    transaction, so conditional updates are atomic; multi-row transactions are
    not offered.
    """

    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        table: str = "parking_slots",
        timeout: float = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize PostgREST store.

        Args:
            url: Project URL, e.g. https://xyz.supabase.co (default: PARKGRID_URL env var)
            api_key: API key (default: PARKGRID_API_KEY env var)
            table: Table holding the slots (default: parking_slots)
            timeout: Request timeout in seconds (default: 30)
            transport: Custom httpx transport (mainly for tests)

        Raises:
            ConfigurationError: If url/api_key not provided and not in env vars
        """
        self.url = url or os.environ.get("PARKGRID_URL")
        self.api_key = api_key or os.environ.get("PARKGRID_API_KEY")

        if not self.url or not self.api_key:
            raise ConfigurationError(
                "Store URL and API key must be provided either as arguments or "
                "via PARKGRID_URL and PARKGRID_API_KEY environment variables"
            )

        self.table = table
        self.timeout = timeout
        self.endpoint = f"{self.url.rstrip('/')}/rest/v1/{table}"
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

        logger.debug(f"Initialized PostgrestSlotStore for {self.endpoint}")

    async def __aenter__(self):
        """Async context manager entry."""
        self._ensure_client()
        return self

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {
                **DEFAULT_HEADERS,
                "apikey": self.api_key,
                "Authorization": f"Bearer {self.api_key}",
            }
            self._client = httpx.AsyncClient(
                headers=headers, timeout=self.timeout, transport=self._transport
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def _encode(patch: SlotPatch) -> dict[str, Any]:
        return to_jsonable_python(patch.to_row())

    async def select_all(self) -> list[Slot]:
        client = self._ensure_client()
        logger.debug(f"Fetching all slots from {self.endpoint}")

        try:
            response = await client.get(
                self.endpoint, params={"select": "*", "order": f"{COL_ID}.asc"}
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ReadFailed(f"Failed to fetch slots: {e}") from e

        rows = response.json()
        logger.debug(f"Retrieved {len(rows)} slots")
        return [Slot.from_row(row) for row in rows]

    async def get(self, slot_id: int) -> Slot | None:
        client = self._ensure_client()

        try:
            response = await client.get(
                self.endpoint, params={"select": "*", COL_ID: f"eq.{slot_id}"}
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ReadFailed(f"Failed to fetch slot {slot_id}: {e}") from e

        rows = response.json()
        return Slot.from_row(rows[0]) if rows else None

    async def conditional_update(
        self, slot_id: int, predicate: Predicate, patch: SlotPatch
    ) -> int:
        client = self._ensure_client()
        params = [(COL_ID, f"eq.{slot_id}"), *predicate.to_params()]
        logger.debug(f"Conditional update on slot {slot_id} with {predicate!r}")

        try:
            response = await client.patch(
                self.endpoint,
                params=params,
                json=self._encode(patch),
                headers={"Prefer": "return=representation"},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise WriteFailed(f"Failed to update slot {slot_id}: {e}") from e

        return len(response.json())

    async def update(self, ids: int | Iterable[int], patch: SlotPatch) -> None:
        id_list = normalize_ids(ids)
        if not id_list:
            return

        client = self._ensure_client()
        id_filter = ",".join(str(slot_id) for slot_id in id_list)
        logger.debug(f"Updating slots {id_list}")

        try:
            response = await client.patch(
                self.endpoint,
                params={COL_ID: f"in.({id_filter})"},
                json=self._encode(patch),
                headers={"Prefer": "return=minimal"},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise WriteFailed(f"Failed to update slots {id_list}: {e}") from e

    async def insert(self, slots: Sequence[Slot]) -> None:
        if not slots:
            return

        client = self._ensure_client()
        payload = [to_jsonable_python(slot.to_row()) for slot in slots]

        try:
            response = await client.post(
                self.endpoint, json=payload, headers={"Prefer": "return=minimal"}
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise WriteFailed(f"Failed to insert {len(slots)} slots: {e}") from e

        logger.info(f"Provisioned {len(slots)} slots in {self.table}")
