"""Level definitions for the screens that share the location chain."""

from __future__ import annotations

from typing import List

from ehostelz.core.config import settings
from ehostelz.selection.models import LevelSpec

PROVINCE = "province"
CITY = "city"
AREA = "area"


def location_levels() -> List[LevelSpec]:
    """Province -> city -> area, as used by hostel search and the demo form.

    The APEX cities resource does not filter by province, so the full table
    is fetched and narrowed locally on ``province_id``. Areas are optional:
    many cities have none.
    """

    timeout = settings.APEX_TIMEOUT_SEC
    return [
        LevelSpec(
            key=PROVINCE,
            label="Province",
            endpoint="provinces",
            stale_seconds=settings.PROVINCE_STALE_MINUTES * 60,
            retries=settings.REQUIRED_LEVEL_RETRIES,
            retry_delay=settings.REQUIRED_RETRY_DELAY_SEC,
            retry_delay_cap=settings.RETRY_BACKOFF_CAP_SEC,
            timeout=timeout,
        ),
        LevelSpec(
            key=CITY,
            label="City",
            endpoint="cities",
            parent=PROVINCE,
            filter_locally=True,
            parent_field="province_id",
            stale_seconds=settings.OPTION_STALE_MINUTES * 60,
            retries=settings.REQUIRED_LEVEL_RETRIES,
            retry_delay=settings.REQUIRED_RETRY_DELAY_SEC,
            retry_delay_cap=settings.RETRY_BACKOFF_CAP_SEC,
            timeout=timeout,
        ),
        LevelSpec(
            key=AREA,
            label="Area",
            endpoint="locations/{parent}",
            parent=CITY,
            optional=True,
            parent_field="city_id",
            stale_seconds=settings.OPTION_STALE_MINUTES * 60,
            retries=settings.OPTIONAL_LEVEL_RETRIES,
            retry_delay=settings.OPTIONAL_RETRY_DELAY_SEC,
            retry_delay_cap=settings.OPTIONAL_RETRY_DELAY_SEC,
            timeout=timeout,
        ),
    ]


PRESETS = {
    "location": location_levels,
}
