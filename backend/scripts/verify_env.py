import asyncio
import pathlib
import sys

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))

from ehostelz.core.apex import ApexClient
from ehostelz.core.config import settings
from ehostelz.selection.cell import CachedFetchCell
from ehostelz.selection.presets import CITY, PROVINCE, location_levels


async def main():
    print("ENV:", settings.ENV)
    print("APEX_API_BASE:", settings.APEX_API_BASE)
    print("APEX_TIMEOUT_SEC:", settings.APEX_TIMEOUT_SEC)
    print("HTTP_MAX_CONCURRENCY:", settings.HTTP_MAX_CONCURRENCY)
    print("strict selection:", settings.strict_selection)
    # Walk the first branch of the location chain against the live backend
    client = ApexClient()
    try:
        cell = CachedFetchCell(client, location_levels())
        provinces = await cell.fetch(PROVINCE)
        print("provinces:", len(provinces))
        if provinces:
            cities = await cell.fetch(CITY, provinces[0].key)
            print(f"cities in {provinces[0].label}:", len(cities))
    finally:
        client.close()

if __name__ == "__main__":
    asyncio.run(main())
