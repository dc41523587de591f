import pytest

from scoresync.core.types import LocalCacheType, StoreType, validate_store_type
from scoresync.persistence import create_local_cache, create_score_store
from scoresync.persistence.json import JSONLocalCache
from scoresync.persistence.memory import MemoryLocalCache, MemoryScoreStore
from scoresync.persistence.redis import RedisScoreStore


class TestCreateScoreStore:
    def test_memory(self):
        assert isinstance(create_score_store("memory"), MemoryScoreStore)

    def test_redis(self):
        store = create_score_store("redis")
        assert isinstance(store, RedisScoreStore)
        assert store.name == "redis"

    def test_type_is_case_insensitive(self):
        assert isinstance(create_score_store("MEMORY"), MemoryScoreStore)

    def test_defaults_to_settings(self):
        # conftest pins REMOTE_STORE=memory
        assert isinstance(create_score_store(), MemoryScoreStore)

    def test_unknown_type(self):
        with pytest.raises(ValueError, match="Unsupported store type"):
            create_score_store("postgres")


class TestCreateLocalCache:
    def test_memory(self):
        assert isinstance(create_local_cache("memory"), MemoryLocalCache)

    def test_json_uses_given_directory(self, tmp_path):
        cache = create_local_cache("json", cache_dir=str(tmp_path))

        assert isinstance(cache, JSONLocalCache)
        assert cache.file_path.parent == tmp_path

    def test_unknown_type(self):
        with pytest.raises(ValueError, match="Unsupported local cache type"):
            create_local_cache("sqlite")


def test_enum_values():
    assert validate_store_type("redis") is StoreType.REDIS
    assert LocalCacheType("json") is LocalCacheType.JSON
