import asyncio
import json

import httpx

from scam_thread_risk.infra.pool_loader import PoolLoader
from scam_thread_risk.retrieval.pools import SemIndexItem, SimIndexItem

SIM_PAYLOAD = {"items": [{"id": "a", "category": "bank", "vec": ["otp", "link"]}]}


def test_file_pool_is_loaded_and_cached(tmp_path):
    path = tmp_path / "sim.json"
    path.write_text(json.dumps(SIM_PAYLOAD), encoding="utf-8")
    loader = PoolLoader()

    items = loader.load_blocking(str(path), "sim")
    assert [item.id for item in items] == ["a"]
    assert isinstance(items[0], SimIndexItem)
    assert loader.get_cached(str(path), "sim") is items

    loader.reset()
    assert loader.get_cached(str(path), "sim") is None


def test_dense_pool_from_file(tmp_path):
    path = tmp_path / "sem.json"
    path.write_text(json.dumps({"dim": 2, "items": [{"id": "x", "vec": [0.6, 0.8]}]}), encoding="utf-8")
    items = PoolLoader().load_blocking(str(path), "sem")
    assert isinstance(items[0], SemIndexItem)


def test_concurrent_loads_share_one_fetch():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        return httpx.Response(200, json=SIM_PAYLOAD)

    loader = PoolLoader(transport=httpx.MockTransport(handler))

    async def run():
        return await asyncio.gather(*(loader.load_once("https://pool.example/sim.json") for _ in range(5)))

    results = asyncio.run(run())
    assert len(calls) == 1
    assert all(result is results[0] for result in results)
    assert [item.id for item in results[0]] == ["a"]


def test_failed_load_degrades_and_is_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(500)

    loader = PoolLoader(transport=httpx.MockTransport(handler))
    assert loader.load_blocking("https://pool.example/sim.json") == []
    assert loader.get_cached("https://pool.example/sim.json") is None
    assert loader.load_blocking("https://pool.example/sim.json") == []
    assert len(calls) == 2


def test_slow_source_times_out_to_empty_pool():
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1.0)
        return httpx.Response(200, json=SIM_PAYLOAD)

    loader = PoolLoader(timeout_s=0.05, transport=httpx.MockTransport(handler))
    assert loader.load_blocking("https://pool.example/slow.json") == []


def test_missing_file_and_blank_source(tmp_path):
    loader = PoolLoader()
    assert loader.load_blocking(str(tmp_path / "missing.json")) == []
    assert loader.load_blocking("  ") == []


def test_invalid_json_is_an_empty_pool(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    assert PoolLoader().load_blocking(str(path)) == []


def test_undecodable_file_is_an_empty_pool(tmp_path):
    path = tmp_path / "binary.json"
    path.write_bytes(b"\xff\xfe\x00{")
    loader = PoolLoader()
    assert loader.load_blocking(str(path)) == []
    assert loader.get_cached(str(path)) is None


def test_malformed_url_is_an_empty_pool():
    assert PoolLoader().load_blocking("https://[::1") == []
