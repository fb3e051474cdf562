import pytest

from ragchat.errors import RerankerError
from ragchat.reranker import CrossEncoderReranker


class _Scores(list):
    def tolist(self):
        return list(self)


class FakeCrossEncoder:
    def __init__(self, scores):
        self.scores = scores
        self.pairs = None

    def predict(self, pairs, convert_to_numpy=True):
        self.pairs = pairs
        return _Scores(self.scores)


def _reranker(model):
    reranker = CrossEncoderReranker("BAAI/bge-reranker-v2-m3")
    reranker._model = model
    return reranker


def test_rerank_orders_by_descending_score():
    model = FakeCrossEncoder([0.1, 0.9, 0.5])
    ranked = _reranker(model).rerank("q", ["a", "b", "c"])

    assert ranked == [(1, 0.9), (2, 0.5), (0, 0.1)]
    assert model.pairs == [("q", "a"), ("q", "b"), ("q", "c")]


def test_rerank_keeps_top_n():
    assert _reranker(FakeCrossEncoder([0.1, 0.9, 0.5])).rerank("q", ["a", "b", "c"], top_n=2) == [
        (1, 0.9),
        (2, 0.5),
    ]


def test_no_passages_skips_model():
    reranker = CrossEncoderReranker("unused")
    assert reranker.rerank("q", []) == []
    assert reranker._model is None


def test_model_failure_raises_reranker_error():
    class Broken:
        def predict(self, pairs, convert_to_numpy=True):
            raise RuntimeError("out of memory")

    with pytest.raises(RerankerError):
        _reranker(Broken()).rerank("q", ["a"])
