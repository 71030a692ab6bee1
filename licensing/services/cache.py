"""
Namespaced JSON cache used by the dashboards and the district endpoints.

Keys are stored as ``pmc:<key>``. The Django cache (LocMemCache by default)
backs development and tests; setting ``CACHE_BACKEND=redis`` switches to a
Redis server at ``REDIS_URL``. A cache failure is logged and treated as a
miss so it never breaks the request that asked.
"""
import fnmatch
import json
import logging

import redis
from django.conf import settings
from django.core.cache import cache as django_cache
from django.core.serializers.json import DjangoJSONEncoder

logger = logging.getLogger(__name__)

DEFAULT_TTL = 3600
NAMESPACE = 'pmc'


class LocalCacheBackend:
    """Django cache plus a key registry so patterns can be deleted."""
    name = 'memory'
    registry_key = '__pmc_keys__'

    def _keys(self):
        return set(django_cache.get(self.registry_key) or [])

    def _save_keys(self, keys):
        django_cache.set(self.registry_key, sorted(keys), timeout=None)

    def get(self, key):
        return django_cache.get(key)

    def set(self, key, value, ttl):
        django_cache.set(key, value, timeout=ttl)
        keys = self._keys()
        if key not in keys:
            keys.add(key)
            self._save_keys(keys)

    def delete(self, *keys):
        django_cache.delete_many(keys)
        remaining = self._keys().difference(keys)
        self._save_keys(remaining)

    def keys(self, pattern):
        live = {key for key in self._keys() if django_cache.get(key) is not None}
        return [key for key in live if fnmatch.fnmatchcase(key, pattern)]

    def ping(self):
        django_cache.set('__pmc_ping__', 'PONG', timeout=5)
        return django_cache.get('__pmc_ping__') == 'PONG'

    def memory(self):
        return 'n/a'


class RedisCacheBackend:
    name = 'redis'

    def __init__(self, url):
        self.client = redis.Redis.from_url(url, decode_responses=True, socket_timeout=2)

    def get(self, key):
        return self.client.get(key)

    def set(self, key, value, ttl):
        self.client.setex(key, ttl, value)

    def delete(self, *keys):
        if keys:
            self.client.delete(*keys)

    def keys(self, pattern):
        return list(self.client.scan_iter(match=pattern, count=500))

    def ping(self):
        return bool(self.client.ping())

    def memory(self):
        return self.client.info('memory').get('used_memory_human', 'unknown')


CACHE_ERRORS = (redis.RedisError, OSError, TypeError, ValueError)


class CacheManager:

    def __init__(self, backend=None, namespace=NAMESPACE):
        self.backend = backend or self._default_backend()
        self.namespace = namespace

    @staticmethod
    def _default_backend():
        if getattr(settings, 'CACHE_BACKEND', 'memory') == 'redis':
            return RedisCacheBackend(settings.REDIS_URL)
        return LocalCacheBackend()

    def _key(self, key):
        return f"{self.namespace}:{key}"

    def get(self, key):
        try:
            value = self.backend.get(self._key(key))
            return json.loads(value) if value is not None else None
        except CACHE_ERRORS as exc:
            logger.warning("Cache get error for key %s: %s", key, exc)
            return None

    def set(self, key, value, ttl=DEFAULT_TTL):
        try:
            self.backend.set(self._key(key), json.dumps(value, cls=DjangoJSONEncoder), ttl or DEFAULT_TTL)
            return True
        except CACHE_ERRORS as exc:
            logger.warning("Cache set error for key %s: %s", key, exc)
            return False

    def delete(self, key):
        try:
            self.backend.delete(self._key(key))
        except CACHE_ERRORS as exc:
            logger.warning("Cache delete error for key %s: %s", key, exc)

    def delete_pattern(self, pattern):
        try:
            keys = self.backend.keys(self._key(pattern))
            if keys:
                self.backend.delete(*keys)
            return len(keys)
        except CACHE_ERRORS as exc:
            logger.warning("Cache delete_pattern error for pattern %s: %s", pattern, exc)
            return 0

    def clear(self):
        return self.delete_pattern('*')

    def get_or_set(self, key, producer, ttl=DEFAULT_TTL):
        value = self.get(key)
        if value is None:
            value = producer()
            self.set(key, value, ttl)
        return value

    def is_healthy(self):
        try:
            return self.backend.ping()
        except CACHE_ERRORS as exc:
            logger.warning("Cache health check failed: %s", exc)
            return False

    def stats(self):
        try:
            return {
                'backend': self.backend.name,
                'keys': len(self.backend.keys(self._key('*'))),
                'memory': self.backend.memory(),
            }
        except CACHE_ERRORS as exc:
            logger.warning("Cache stats failed: %s", exc)
            return None


_manager = None


def get_cache():
    global _manager
    if _manager is None:
        _manager = CacheManager()
    return _manager


def invalidate_statistics():
    get_cache().delete_pattern('statistics:*')


def invalidate_districts():
    cache = get_cache()
    cache.delete_pattern('districts:*')
    cache.delete_pattern('statistics:*')


def invalidate_applicant(applicant_id):
    cache = get_cache()
    cache.delete_pattern(f'applicant:{applicant_id}:*')
    cache.delete_pattern('statistics:*')


def invalidate_business_profile(applicant_id=None):
    cache = get_cache()
    if applicant_id is not None:
        cache.delete_pattern(f'applicant:{applicant_id}:*')
    cache.delete_pattern('statistics:*')


def invalidate_inspection_reports():
    cache = get_cache()
    cache.delete_pattern('inspection:*')
    cache.delete_pattern('statistics:*')


def clear_all():
    return get_cache().clear()
