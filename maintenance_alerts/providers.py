"""
Maintenance Alert Engine - Snapshot Providers.

============================================================
PURPOSE
============================================================
Sources of per-tenant component snapshots. The reliability and
inventory data are owned by the surrounding system; providers
only read them.

Implementations:
- InMemorySnapshotProvider : fixed data (tests, embedding)
- YamlFileSnapshotProvider : snapshot export on disk
- HttpSnapshotProvider     : REST endpoint of the host system

============================================================
RAW SNAPSHOT FORMAT
============================================================
    component_id: "cmp-1"
    component_name: "Feed pump bearing"
    part_number: "6204-2RS"          # optional
    criticality: "A"                 # optional, A/B/C
    mtbf: 2000                       # hours, optional
    current_operating_hours: 1900
    inventory:                       # optional; no item -> not monitored
      inventory_item_id: "inv-1"
      current_stock: 0               # or stock_locations: [{quantity: n}, ...]
      minimum_stock: 2
      reorder_point: 3
      lead_time_days: 5

============================================================
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import quote

import aiohttp
import yaml

from .exceptions import MalformedSnapshotError, SnapshotProviderError
from .types import ComponentSnapshot, Criticality, InventoryPosition, ReliabilitySnapshot


logger = logging.getLogger(__name__)

DEFAULT_LEAD_TIME_DAYS = 7


# ============================================================
# SNAPSHOT BUILDING
# ============================================================


def build_component_snapshot(
    component: Dict[str, Any],
    inventory_item: Optional[Dict[str, Any]],
    stock_locations: Optional[Iterable[Dict[str, Any]]] = None,
) -> Optional[ComponentSnapshot]:
    """
    Assemble a snapshot from raw component/inventory records.

    Stock is the sum of the item's location quantities when those
    are given. Missing minimum stock and reorder point default to 0,
    missing lead time to 7 days.

    Returns:
        ComponentSnapshot, or None when the component has no
        inventory item (nothing to alert on)

    Raises:
        MalformedSnapshotError: When a field cannot be interpreted
    """
    component_id = component.get("component_id") or component.get("id")
    if inventory_item is None:
        return None

    try:
        if stock_locations is not None:
            current_stock = sum(int(loc.get("quantity") or 0) for loc in stock_locations)
        else:
            current_stock = int(inventory_item.get("current_stock") or 0)

        mtbf = component.get("mtbf")
        reliability = ReliabilitySnapshot(
            component_id=str(component_id) if component_id is not None else "",
            component_name=str(component.get("component_name") or component.get("name") or component_id),
            part_number=component.get("part_number"),
            criticality=Criticality.parse(component.get("criticality")),
            mtbf=float(mtbf) if mtbf is not None else None,
            current_operating_hours=float(component.get("current_operating_hours") or 0),
        )
        inventory = InventoryPosition(
            inventory_item_id=str(inventory_item.get("inventory_item_id") or inventory_item.get("id") or ""),
            current_stock=current_stock,
            minimum_stock=int(inventory_item.get("minimum_stock") or 0),
            reorder_point=int(inventory_item.get("reorder_point") or 0),
            lead_time_days=float(
                inventory_item.get("lead_time_days")
                if inventory_item.get("lead_time_days") is not None
                else DEFAULT_LEAD_TIME_DAYS
            ),
        )
    except (TypeError, ValueError) as e:
        raise MalformedSnapshotError(component_id, str(e)) from e

    return ComponentSnapshot(reliability=reliability, inventory=inventory)


def snapshot_from_dict(raw: Dict[str, Any]) -> Optional[ComponentSnapshot]:
    """Build a snapshot from one raw mapping (see module docstring)."""
    if not isinstance(raw, dict):
        raise MalformedSnapshotError("<unknown>", f"expected a mapping, got {type(raw).__name__}")
    inventory = raw.get("inventory")
    locations = inventory.get("stock_locations") if isinstance(inventory, dict) else None
    return build_component_snapshot(raw, inventory, locations)


def parse_snapshots(entries: Iterable[Any], company_id: str) -> List[ComponentSnapshot]:
    """
    Parse raw entries, skipping (and logging) the ones that fail.

    Components without an inventory item are dropped silently.
    """
    snapshots = []
    for raw in entries or []:
        try:
            snapshot = snapshot_from_dict(raw)
        except MalformedSnapshotError as e:
            logger.error(f"Skipping snapshot for company {company_id}: {e}")
            continue
        if snapshot is not None:
            snapshots.append(snapshot)
    return snapshots


# ============================================================
# PROVIDER INTERFACE
# ============================================================


class SnapshotProvider(ABC):
    """Tenant-scoped source of component snapshots."""

    @abstractmethod
    async def list_tenants(self) -> List[str]:
        """Company ids with monitored components."""
        pass

    @abstractmethod
    async def fetch_snapshots(self, company_id: str) -> List[ComponentSnapshot]:
        """Current snapshots for every monitored component of a tenant."""
        pass

    async def close(self) -> None:
        """Release any held resources."""
        return None


class InMemorySnapshotProvider(SnapshotProvider):
    """Provider over a fixed mapping of company id -> snapshots."""

    def __init__(self, snapshots_by_company: Optional[Dict[str, List[ComponentSnapshot]]] = None):
        self._data: Dict[str, List[ComponentSnapshot]] = dict(snapshots_by_company or {})

    def set_snapshots(self, company_id: str, snapshots: List[ComponentSnapshot]) -> None:
        self._data[company_id] = list(snapshots)

    async def list_tenants(self) -> List[str]:
        return sorted(self._data)

    async def fetch_snapshots(self, company_id: str) -> List[ComponentSnapshot]:
        return list(self._data.get(company_id, []))


class YamlFileSnapshotProvider(SnapshotProvider):
    """
    Reads a YAML snapshot export.

    The file is re-read on every call so an external exporter can
    refresh it between scheduler ticks.

    Layout:
        companies:
          <company_id>:
            - <raw snapshot>
    """

    def __init__(self, path: Path):
        self._path = Path(path)

    def _load(self) -> Dict[str, Any]:
        try:
            with open(self._path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise SnapshotProviderError(str(self._path), str(e)) from e

        companies = data.get("companies") if isinstance(data, dict) else None
        if not isinstance(companies, dict):
            raise SnapshotProviderError(str(self._path), "missing 'companies' mapping")
        return companies

    async def list_tenants(self) -> List[str]:
        companies = await asyncio.to_thread(self._load)
        return sorted(str(c) for c in companies)

    async def fetch_snapshots(self, company_id: str) -> List[ComponentSnapshot]:
        companies = await asyncio.to_thread(self._load)
        return parse_snapshots(companies.get(company_id, []), company_id)


class HttpSnapshotProvider(SnapshotProvider):
    """
    Fetches snapshots from the host system's REST API.

    Endpoints:
        GET {base_url}/companies                              -> ["acme", ...]
        GET {base_url}/companies/{company_id}/component-snapshots -> [<raw snapshot>, ...]
    """

    def __init__(
        self,
        base_url: str,
        api_token: Optional[str] = None,
        timeout_seconds: float = 10.0,
    ):
        self._base_url = base_url.rstrip("/")
        self._api_token = api_token
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session: Optional[aiohttp.ClientSession] = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            headers = {"Accept": "application/json"}
            if self._api_token:
                headers["Authorization"] = f"Bearer {self._api_token}"
            self._session = aiohttp.ClientSession(timeout=self._timeout, headers=headers)
        return self._session

    async def _get_json(self, path: str, company_id: Optional[str] = None) -> Any:
        session = await self._ensure_session()
        url = f"{self._base_url}{path}"
        try:
            async with session.get(url) as response:
                if response.status != 200:
                    body = await response.text()
                    raise SnapshotProviderError(url, f"HTTP {response.status}: {body[:200]}", company_id)
                return await response.json()
        except aiohttp.ClientError as e:
            raise SnapshotProviderError(url, str(e), company_id) from e

    async def list_tenants(self) -> List[str]:
        payload = await self._get_json("/companies")
        return [str(item["id"]) if isinstance(item, dict) else str(item) for item in payload]

    async def fetch_snapshots(self, company_id: str) -> List[ComponentSnapshot]:
        payload = await self._get_json(
            f"/companies/{quote(company_id, safe='')}/component-snapshots", company_id
        )
        return parse_snapshots(payload, company_id)

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
