"""
Cache administration handlers
Each handler returns an HTTP-style (status_code, body) pair
"""

from typing import Any, Dict, Optional, Tuple

from .data.cache_manager import CacheManager
from .utils import get_logger

logger = get_logger(__name__)

Response = Tuple[int, Dict[str, Any]]

def error_body(message: str) -> Dict[str, Any]:
    return {'error': message}

async def cache_stats_handler(manager: CacheManager) -> Response:
    """
    Report cache statistics

    Returns:
        (200, {"memory_cache": {...}, "file_cache": {"size": n}}) or
        (500, {"error": ...})
    """
    try:
        stats = await manager.get_cache_stats()
    except Exception as e:
        logger.error(f"Error fetching cache stats: {e}")
        return 500, error_body('Failed to fetch cache statistics')
    return 200, stats

async def cache_delete_handler(manager: CacheManager, key: Optional[str]) -> Response:
    """
    Invalidate one cache key in both tiers

    Returns:
        (400, ...) when no key is given, (200, {"message": ...}) once the
        key is gone, (500, ...) on unexpected failure
    """
    if not key:
        return 400, error_body('Cache key is required')

    try:
        await manager.invalidate_cache(key)
    except Exception as e:
        logger.error(f"Error invalidating cache: {e}")
        return 500, error_body('Failed to invalidate cache')
    return 200, {'message': f'Cache invalidated for key: {key}'}
