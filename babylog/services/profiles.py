"""Baby profile: the store allows several, the app works with the first one."""

import logging
from typing import Any, Dict, Optional

from babylog.core.constants import PROFILES
from babylog.db.models import Profile
from babylog.services.entity_store import EntityStore, Key, RecordLike, normalize_record

logger = logging.getLogger(__name__)


async def get_active_profile(store: EntityStore) -> Optional[Dict[str, Any]]:
    profiles = await store.query_range(PROFILES, "id")
    return profiles[0] if profiles else None


async def save_profile(store: EntityStore, profile: RecordLike) -> Key:
    """Upsert onto the active profile's id, or create the first profile."""
    record = normalize_record(profile)
    Profile.model_validate(record)

    active = await get_active_profile(store)
    if active is None:
        profile_id = await store.add(PROFILES, {k: v for k, v in record.items() if k != "id"})
        logger.info(f"Created profile {profile_id}")
        return profile_id

    return await store.put(PROFILES, {**record, "id": active["id"]})
