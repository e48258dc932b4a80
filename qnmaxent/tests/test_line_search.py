import numpy as np
import pytest

from qnmaxent.optim.array_math import inv_l2_norm, l1_norm
from qnmaxent.optim.functions import QuadraticFunction, RosenbrockFunction
from qnmaxent.optim.hessian import HessianUpdateStore
from qnmaxent.optim.line_search import (
    C,
    LineSearchResult,
    do_constrained_line_search,
    do_line_search,
)
from qnmaxent.tests.fixtures import CountingFunction


def initial_lsr(func, x):
    return LineSearchResult.initial(func.value_at(x), np.array(func.gradient_at(x)), x)


def test_line_search_satisfies_armijo():
    func = QuadraticFunction()
    x = np.zeros(2)
    lsr = initial_lsr(func, x)
    direction = -lsr.grad_at_next
    do_line_search(func, direction, lsr, initial_step_size=4.0)

    assert lsr.value_at_next <= lsr.value_at_curr + C * lsr.step_size * np.dot(direction, lsr.grad_at_curr)
    np.testing.assert_allclose(lsr.curr_point, x)
    np.testing.assert_allclose(lsr.next_point, x + lsr.step_size * direction)
    np.testing.assert_allclose(lsr.grad_at_next, func.gradient_at(lsr.next_point))


def test_line_search_halves_until_accepted():
    func = CountingFunction(QuadraticFunction())
    x = np.zeros(2)
    lsr = initial_lsr(func.inner, x)
    direction = -lsr.grad_at_next
    # steps 4, 2 and 1 fail the Armijo test; 0.5 lands on the minimum
    do_line_search(func, direction, lsr, initial_step_size=4.0)
    assert lsr.step_size == 0.5
    assert lsr.fct_eval_count == func.values == 4
    assert lsr.step_size == 4.0 / 2 ** (func.values - 1)


def test_line_search_stays_put_on_ascent_direction():
    func = QuadraticFunction()
    x = np.zeros(2)
    lsr = initial_lsr(func, x)
    direction = lsr.grad_at_next.copy()  # uphill
    do_line_search(func, direction, lsr, initial_step_size=1.0)
    np.testing.assert_allclose(lsr.next_point, x)
    assert lsr.value_at_next == lsr.value_at_curr
    assert lsr.step_size < 1e-10


def test_func_change_rate():
    lsr = LineSearchResult.initial(10.0, np.zeros(2), np.zeros(2))
    lsr.value_at_curr = 10.0
    lsr.value_at_next = 9.0
    assert lsr.func_change_rate == pytest.approx(0.1)


def test_initial_for_l1_has_sign_vector():
    lsr = LineSearchResult.initial_for_l1(1.0, np.ones(3), np.ones(3), np.zeros(3))
    assert lsr.sign_vector is not None and lsr.sign_vector.shape == (3,)
    assert lsr.pseudo_grad_at_next is not None


def test_constrained_line_search_projects_sign_changes():
    # minimum of the smooth part at (1, 5); start on the wrong side of zero for x0
    func = QuadraticFunction()
    x = np.array([-0.5, 1.0])
    l1_cost = 0.1
    grad = np.array(func.gradient_at(x))
    pseudo = grad + l1_cost * np.sign(x)
    value = func.value_at(x) + l1_cost * l1_norm(x)
    lsr = LineSearchResult.initial_for_l1(value, grad, pseudo, x)

    direction = -pseudo
    do_constrained_line_search(func, direction, lsr, l1_cost, initial_step_size=1.0)

    # x0 would cross zero with a full step; projection keeps it at 0
    assert lsr.next_point[0] == 0.0
    assert lsr.next_point[1] > 1.0
    np.testing.assert_allclose(lsr.sign_vector, x)
    assert lsr.value_at_next <= value
    assert lsr.value_at_next == pytest.approx(func.value_at(lsr.next_point) + l1_cost * l1_norm(lsr.next_point))


def test_constrained_sign_vector_uses_pseudo_gradient_at_zero():
    func = QuadraticFunction()
    x = np.zeros(2)
    l1_cost = 0.5
    grad = np.array(func.gradient_at(x))
    pseudo = grad + l1_cost  # grad < -l1 on both coordinates
    lsr = LineSearchResult.initial_for_l1(func.value_at(x), grad, pseudo, x)
    do_constrained_line_search(func, -pseudo, lsr, l1_cost, inv_l2_norm(pseudo))
    np.testing.assert_allclose(lsr.sign_vector, -pseudo)
    assert np.all(lsr.next_point > 0)


class TestHessianUpdateStore:
    def _lsr(self, s, y):
        lsr = LineSearchResult.initial(0.0, np.zeros(len(s)), np.zeros(len(s)))
        lsr.curr_point = np.zeros(len(s))
        lsr.next_point = np.asarray(s, dtype=float)
        lsr.grad_at_curr = np.zeros(len(s))
        lsr.grad_at_next = np.asarray(y, dtype=float)
        return lsr

    def test_ring_buffer_keeps_newest_pairs_in_order(self):
        store = HessianUpdateStore(3, 2)
        for i in range(1, 6):
            store.update(self._lsr([i, 0.0], [1.0, 0.0]))
        assert len(store) == 3
        oldest_to_newest = [store.S[store.slot(i)][0] for i in range(3)]
        assert oldest_to_newest == [3.0, 4.0, 5.0]
        assert store.rho[store.slot(2)] == pytest.approx(1 / 5.0)

    def test_empty_store_returns_steepest_descent(self):
        store = HessianUpdateStore(4, 3)
        g = np.array([1.0, -2.0, 0.5])
        np.testing.assert_allclose(store.compute_direction(g.copy()), -g)

    def test_recovers_newton_step_on_quadratic(self):
        # f = x^T A x / 2 with A = diag(2, 8); after two independent pairs
        # the two-loop recursion reproduces A^-1 g exactly along those pairs
        A = np.diag([2.0, 8.0])
        store = HessianUpdateStore(5, 2)
        for s in ([1.0, 0.0], [0.0, 1.0]):
            s = np.array(s)
            store.update(self._lsr(s, A @ s))
        g = np.array([4.0, 8.0])
        np.testing.assert_allclose(store.compute_direction(g.copy()), -np.linalg.solve(A, g))

    def test_zero_step_is_ignored(self):
        store = HessianUpdateStore(2, 2)
        store.update(self._lsr([0.0, 0.0], [0.0, 0.0]))
        assert len(store) == 0

    def test_reset(self):
        store = HessianUpdateStore(2, 2)
        store.update(self._lsr([1.0, 0.0], [1.0, 0.0]))
        store.reset()
        assert len(store) == 0 and not store.S.any()


def test_rosenbrock_lbfgs_steps_never_increase_value():
    func = RosenbrockFunction()
    x = np.zeros(2)
    lsr = initial_lsr(func, x)
    store = HessianUpdateStore(15, 2)
    step = inv_l2_norm(lsr.grad_at_next)
    values = [lsr.value_at_next]
    for _ in range(60):
        direction = store.compute_direction(lsr.grad_at_next.copy())
        do_line_search(func, direction, lsr, step)
        store.update(lsr)
        values.append(lsr.value_at_next)
        step = 1.0
    assert all(b <= a for a, b in zip(values, values[1:]))
    assert values[-1] < values[0]
