"""
Offline cache configuration endpoint.

Pages and the cache shim read the current generation and manifest from
here, so rolling out new assets only requires changing CACHE_GENERATION.
"""

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from ..dependencies import SettingsDep

router = APIRouter()


class OfflineCacheConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    generation: str
    manifest: list[str]
    excluded_prefixes: list[str] = Field(alias="excludedPrefixes")


@router.get(
    "/config",
    response_model=OfflineCacheConfig,
    response_model_by_alias=True,
    summary="Offline cache generation and manifest",
)
async def offline_cache_config(settings: SettingsDep) -> OfflineCacheConfig:
    return OfflineCacheConfig(
        generation=settings.cache_generation,
        manifest=settings.cache_manifest_list,
        excluded_prefixes=settings.cache_excluded_prefixes_list,
    )
