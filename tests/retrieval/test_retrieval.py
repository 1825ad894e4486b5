import math

from scam_thread_risk.domain.evidence import SignalSummary
from scam_thread_risk.retrieval.pools import parse_pool, parse_sem_pool, parse_sim_pool
from scam_thread_risk.retrieval.semantic import rank_semantic
from scam_thread_risk.retrieval.similarity import cosine, rank_similar, similarity_hint, vec_from_signals


def _signal(signal_id: str, weight: float) -> SignalSummary:
    return SignalSummary(id=signal_id, label=signal_id, weight_sum=weight, count=1)


def test_vec_from_signals_normalizes_to_heaviest():
    vec = vec_from_signals([_signal("otp", 44), _signal("link", 25), _signal("zero", 0)])
    assert vec["otp"] == 1.0
    assert 0 < vec["link"] < 1
    assert "zero" not in vec


def test_cosine_edges():
    assert cosine({}, {"a": 1}) == 0.0
    assert math.isclose(cosine({"a": 1, "b": 1}, {"a": 2, "b": 2}), 1.0)


def test_sim_pool_accepts_list_and_map_fingerprints():
    pool = parse_sim_pool(
        {
            "items": [
                {"id": "a", "category": "loan", "signalFingerprint": ["otp", "link"]},
                {"id": "b", "vec": {"transfer": 2}},
                {"id": "", "vec": {"x": 1}},
                {"id": "c"},
                "junk",
            ]
        }
    )
    assert [item.id for item in pool] == ["a", "b"]
    assert pool[0].vec == {"otp": 1.0, "link": 1.0}


def test_rank_similar_keeps_low_candidates_for_explanation():
    pool = parse_pool([{"id": "a", "vec": ["otp", "link"]}, {"id": "b", "vec": ["giftcard"]}], "sim")
    ranked = rank_similar([_signal("otp", 22), _signal("link", 25)], pool, top_k=5)
    assert [item.id for item in ranked] == ["a", "b"]
    assert ranked[0].similarity > 0.99
    assert ranked[1].similarity == 0
    assert set(ranked[0].shared_signals or []) == {"otp", "link"}
    filtered = rank_similar([_signal("otp", 22)], pool, min_sim=0.5)
    assert [item.id for item in filtered] == ["a"]


def test_similarity_hint_reports_boost():
    pool = parse_pool([{"id": "a", "category": "bank", "vec": ["otp"]}], "sim")
    top = rank_similar([_signal("otp", 22)], pool)[0]
    hint = similarity_hint(top, gate=0.9, gate_pass=True, anchor=True, applied=10)
    assert hint.id == "sim_hint"
    assert "boost=+10" in hint.examples
    assert "cat=bank" in hint.examples


def test_sem_pool_skips_dimension_mismatch():
    pool = parse_sem_pool({"dim": 2, "items": [{"id": "a", "vec": [1, 0]}, {"id": "b", "vec": [1, 0, 0]}]})
    assert [item.id for item in pool] == ["a"]


def test_rank_semantic_orders_and_filters():
    pool = parse_sem_pool(
        {
            "items": [
                {"id": "near", "category": "family", "vec": [1.0, 0.0]},
                {"id": "mid", "vec": [0.6, 0.8]},
                {"id": "far", "vec": [-1.0, 0.0]},
            ]
        }
    )
    ranked = rank_semantic([1.0, 0.0], pool, top_k=5)
    assert [item.id for item in ranked] == ["near", "mid", "far"]
    assert ranked[-1].similarity == 0.0
    assert [item.id for item in rank_semantic([1.0, 0.0], pool, min_sim=0.5)] == ["near", "mid"]
    assert rank_semantic(None, pool) == []


def test_rank_semantic_rejects_query_of_other_dimension():
    pool = parse_sem_pool({"dim": 4, "items": [{"id": "a", "vec": [1.0, 0.0, 0.0, 0.0]}]})
    assert rank_semantic([1.0, 0.0], pool) == []
    assert [item.id for item in rank_semantic([1.0, 0.0, 0.0, 0.0], pool)] == ["a"]
