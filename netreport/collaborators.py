"""Read clients for the alert, intervention and maintenance services.

Each service exposes one site-scoped history endpoint answering with a
JSON array.  The three reads are independent, so :meth:`fetch_all` runs
them concurrently in worker threads.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from .config import CollaboratorsConfig
from .domain_models import AlertRecord, InterventionRecord, MaintenanceRecord
from .errors import UpstreamFetchError

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

_MAX_ERROR_BODY_BYTES = 64 * 1024


@dataclass(slots=True)
class SiteRecords:
    alerts: list[AlertRecord]
    interventions: list[InterventionRecord]
    maintenance_records: list[MaintenanceRecord]


def _error_message(exc: HTTPError) -> str:
    """Best-effort ``message`` field from an upstream JSON error body."""
    try:
        body = exc.read(_MAX_ERROR_BODY_BYTES)
    except OSError:
        body = b""
    if body:
        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            payload = None
        if isinstance(payload, dict):
            for key in ("message", "error", "detail"):
                value = payload.get(key)
                if isinstance(value, str) and value.strip():
                    return value.strip()
    return str(exc.reason or exc)


class CollaboratorClient:
    """Blocking HTTP reads against the three upstream services."""

    def __init__(self, config: CollaboratorsConfig) -> None:
        self._config = config

    def _api_get(self, url: str) -> Any:
        req = Request(url, headers={"Accept": "application/json"})
        with urlopen(req, timeout=self._config.timeout_s) as resp:  # noqa: S310
            return json.loads(resp.read().decode("utf-8"))

    def _get_records(
        self,
        service: str,
        base_url: str,
        path: str,
        site_id: str,
        params: Mapping[str, str],
        parse: Callable[[Mapping[str, Any]], T],
    ) -> list[T]:
        url = f"{base_url}/{path}/{quote(site_id, safe='')}?{urlencode(params)}"
        LOGGER.debug("Fetching %s records for site %s", service, site_id)
        try:
            payload = self._api_get(url)
        except HTTPError as exc:
            message = _error_message(exc)
            LOGGER.warning("%s service answered HTTP %s: %s", service, exc.code, message)
            raise UpstreamFetchError(
                f"API error: {message}", upstream_status=exc.code
            ) from exc
        except (URLError, TimeoutError, OSError) as exc:
            LOGGER.warning("%s service unreachable at %s", service, base_url, exc_info=True)
            raise UpstreamFetchError(f"Internal server error: {exc}") from exc
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise UpstreamFetchError(
                f"Internal server error: {service} service returned invalid JSON"
            ) from exc
        if not isinstance(payload, list):
            raise UpstreamFetchError(
                f"Internal server error: {service} service returned {type(payload).__name__}, "
                "expected a list"
            )
        return [parse(item) for item in payload if isinstance(item, Mapping)]

    def fetch_alerts(self, site_id: str, params: Mapping[str, str]) -> list[AlertRecord]:
        return self._get_records(
            "alerts",
            self._config.alerts_url,
            "history",
            site_id,
            params,
            AlertRecord.from_dict,
        )

    def fetch_interventions(
        self, site_id: str, params: Mapping[str, str]
    ) -> list[InterventionRecord]:
        return self._get_records(
            "interventions",
            self._config.interventions_url,
            "site",
            site_id,
            params,
            InterventionRecord.from_dict,
        )

    def fetch_maintenance(self, site_id: str, params: Mapping[str, str]) -> list[MaintenanceRecord]:
        return self._get_records(
            "maintenance",
            self._config.maintenance_url,
            "equipment",
            site_id,
            params,
            MaintenanceRecord.from_dict,
        )

    async def fetch_all(self, site_id: str, from_iso: str, to_iso: str) -> SiteRecords:
        """Fetch all three record sets for *site_id* within the given bounds.

        The first failure propagates; results of the other reads are
        discarded.
        """
        params = {"fromDate": from_iso, "toDate": to_iso}
        alerts, interventions, maintenance_records = await asyncio.gather(
            asyncio.to_thread(self.fetch_alerts, site_id, params),
            asyncio.to_thread(self.fetch_interventions, site_id, params),
            asyncio.to_thread(self.fetch_maintenance, site_id, params),
        )
        LOGGER.info(
            "Fetched site %s records: alerts=%d interventions=%d maintenance=%d",
            site_id,
            len(alerts),
            len(interventions),
            len(maintenance_records),
        )
        return SiteRecords(
            alerts=alerts,
            interventions=interventions,
            maintenance_records=maintenance_records,
        )
