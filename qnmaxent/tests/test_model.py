"""
Test: Model Evaluation

Sparse contexts, evaluation parameters, QNModel probabilities and the
training-set evaluator.
"""

import math

import numpy as np
import pytest

from qnmaxent.model.context import Context, EvalParameters
from qnmaxent.model.events import IndexedEvents
from qnmaxent.model.qn_model import QNModel
from qnmaxent.trainer.evaluator import QNModelEvaluator


def two_outcome_model():
    # predicate "p" favours "a", predicate "q" favours "b"
    contexts = [Context([0], [2.0]), Context([1], [1.0]), Context([], [])]
    return QNModel(contexts, ["p", "q", "unused"], ["a", "b"])


class TestContext:
    def test_from_dense_drops_zeros(self):
        ctx = Context.from_dense(np.array([0.0, 1.5, 0.0, -2.0]))
        assert ctx.outcomes.tolist() == [1, 3]
        assert ctx.parameters.tolist() == [1.5, -2.0]
        assert ctx.contains(3) and not ctx.contains(0)
        assert len(ctx) == 2

    def test_equality_and_hash(self):
        a = Context([0, 2], [1.0, 2.0])
        b = Context([0, 2], [1.0, 2.0])
        assert a == b and hash(a) == hash(b)
        assert a != Context([0, 2], [1.0, 3.0])

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            Context([0, 1], [1.0])

    def test_read_only(self):
        ctx = Context([0], [1.0])
        with pytest.raises(ValueError):
            ctx.parameters[0] = 2.0


class TestEvalParameters:
    def test_tiny_correction_constant(self):
        assert EvalParameters([], 2, correction_constant=1e-9).constant_inverse == 1.0
        assert EvalParameters([], 2, correction_constant=4.0).constant_inverse == 0.25

    def test_equality(self):
        a = EvalParameters([Context([0], [1.0])], 2)
        b = EvalParameters([Context([0], [1.0])], 2)
        assert a == b and hash(a) == hash(b)
        assert a != EvalParameters([Context([0], [1.0])], 3)


class TestQNModel:
    def test_eval_probabilities(self):
        model = two_outcome_model()
        probs = model.eval(["p"])
        expected_a = math.exp(2.0) / (math.exp(2.0) + 1.0)
        np.testing.assert_allclose(probs, [expected_a, 1.0 - expected_a])
        assert model.get_best_outcome(probs) == "a"

    def test_unknown_predicates_are_ignored(self):
        model = two_outcome_model()
        np.testing.assert_allclose(model.eval(["p", "never-seen"]), model.eval(["p"]))
        np.testing.assert_allclose(model.eval(["never-seen"]), [0.5, 0.5])

    def test_eval_with_values(self):
        model = two_outcome_model()
        probs = model.eval(["p", "q"], values=[0.5, 3.0])
        # scores: a = 1.0, b = 3.0
        expected_b = math.exp(3.0) / (math.exp(1.0) + math.exp(3.0))
        assert probs[1] == pytest.approx(expected_b)
        with pytest.raises(ValueError):
            model.eval(["p", "q"], values=[1.0])

    def test_eval_into_buffer(self):
        model = two_outcome_model()
        buffer = np.zeros(2)
        out = model.eval(["q"], probs=buffer)
        assert out is buffer
        assert buffer.sum() == pytest.approx(1.0)

    def test_eval_flat_matches_eval(self):
        model = two_outcome_model()
        # outcome-major: [a|p, a|q, a|unused, b|p, b|q, b|unused]
        flat = np.array([2.0, 0.0, 0.0, 0.0, 1.0, 0.0])
        np.testing.assert_allclose(
            QNModel.eval_flat([0, 1], None, 2, 3, flat),
            model.eval(["p", "q"]),
        )
        np.testing.assert_allclose(
            QNModel.eval_flat([0, 1], [0.5, 3.0], 2, 3, flat),
            model.eval(["p", "q"], values=[0.5, 3.0]),
        )

    def test_lookups(self):
        model = two_outcome_model()
        assert model.num_outcomes == 2
        assert model.get_index("b") == 1
        assert model.get_index("zzz") == -1
        assert model.get_outcome(0) == "a"
        assert model.get_pred_index("q") == 1
        assert model.get_pred_index("zzz") == -1
        assert model.get_all_outcomes([0.25, 0.75]) == "a[0.2500] b[0.7500]"
        with pytest.raises(ValueError):
            model.get_all_outcomes([1.0])

    def test_equality(self):
        assert two_outcome_model() == two_outcome_model()
        assert hash(two_outcome_model()) == hash(two_outcome_model())

    def test_one_context_per_predicate(self):
        with pytest.raises(ValueError):
            QNModel([Context([0], [1.0])], ["p", "q"], ["a"])


class TestEvaluator:
    def test_perfect_and_chance_parameters(self, separable_events):
        evaluator = QNModelEvaluator(separable_events)
        n_out, n_feat = separable_events.num_outcomes, separable_events.num_features

        weights = np.zeros((n_out, n_feat))
        for o in range(n_out):
            weights[o, o] = 1.0
        assert evaluator.evaluate(weights.ravel()) == 1.0

        # ties resolve to outcome 0, which is right for one event in three
        assert evaluator.evaluate(np.zeros(n_out * n_feat)) == pytest.approx(1 / 3)

    def test_weighted_by_times_seen(self):
        events = IndexedEvents(
            contexts=[[0], [1]], outcome_list=[0, 0], num_times_seen=[3, 1],
            pred_labels=["p", "q"], outcome_labels=["a", "b"],
        )
        # p -> a, q -> b: the three copies of event 0 are right, event 1 is wrong
        flat = np.array([1.0, 0.0, 0.0, 1.0])
        assert QNModelEvaluator(events).evaluate(flat) == pytest.approx(0.75)

    def test_requires_events(self):
        with pytest.raises(ValueError):
            QNModelEvaluator(None)
