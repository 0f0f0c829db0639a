from __future__ import annotations

from .evidence_store import EvidenceStore
from .models import EvidenceBundle, to_iso, utc_now


RETRIEVED_TYPES = ("gauge", "forecast", "assessment")


class EvidenceRetrieval:
    """Recency + type filtered retrieval over an ``EvidenceStore``.

    Bundles are assembled fresh on every call. The ``latest_*`` pointers are
    fetched separately, so they are present even when older than the cap's
    cutoff.
    """

    def __init__(self, store: EvidenceStore) -> None:
        self.store = store

    def retrieve(self, station_id: str, limit: int = 10) -> EvidenceBundle:
        items = self.store.query(station_id, RETRIEVED_TYPES, limit)
        return EvidenceBundle(
            station_id=station_id,
            items=tuple(items),
            retrieved_at=to_iso(utc_now()),
            latest_gauge=self.store.query_latest(station_id, "gauge"),
            latest_forecast=self.store.query_latest(station_id, "forecast"),
            latest_assessment=self.store.query_latest(station_id, "assessment"),
        )
