"""
Synthetic training sets for the optimizer and trainer tests.

Each generator is seeded so the tests are reproducible.
"""

import numpy as np
from dataclasses import dataclass
from typing import List, Optional

from qnmaxent.model.events import Event, IndexedEvents


@dataclass
class SyntheticEvents:
    """Container for a generated training set."""
    indexed: IndexedEvents
    description: str
    informative: List[int]  # predicate ids that carry signal


def generate_random_indexed(n_contexts: int = 40, n_features: int = 7, n_outcomes: int = 3,
                            max_active: int = 4, with_values: bool = False,
                            seed: int = 42) -> IndexedEvents:
    """
    Arbitrary indexed events with random contexts, outcomes and repeat counts.

    No structure at all; used where only the arithmetic matters
    (gradient checks, parallel equivalence).
    """
    rng = np.random.default_rng(seed)
    contexts = []
    values = [] if with_values else None
    for _ in range(n_contexts):
        k = int(rng.integers(1, max_active + 1))
        contexts.append(np.sort(rng.choice(n_features, size=k, replace=False)))
        if with_values:
            values.append(rng.uniform(0.1, 2.0, size=k))

    return IndexedEvents(
        contexts=contexts,
        outcome_list=rng.integers(0, n_outcomes, size=n_contexts),
        num_times_seen=rng.integers(1, 4, size=n_contexts),
        pred_labels=[f"f{i}" for i in range(n_features)],
        outcome_labels=[f"o{i}" for i in range(n_outcomes)],
        values=values,
    )


def generate_separable(n_outcomes: int = 3, repeats: int = 5) -> SyntheticEvents:
    """
    Every outcome has its own cue predicate; a shared bias predicate is
    active everywhere.

    cue=o -> outcome o
    """
    bias = n_outcomes
    contexts = [[o, bias] for o in range(n_outcomes)]
    indexed = IndexedEvents(
        contexts=contexts,
        outcome_list=list(range(n_outcomes)),
        num_times_seen=[repeats] * n_outcomes,
        pred_labels=[f"cue={o}" for o in range(n_outcomes)] + ["bias"],
        outcome_labels=[f"o{o}" for o in range(n_outcomes)],
    )
    return SyntheticEvents(indexed, "one cue per outcome", informative=list(range(n_outcomes)))


def generate_noisy_with_redundant(n: int = 200, n_noise: int = 20, agreement: float = 0.9,
                                  seed: int = 42) -> SyntheticEvents:
    """
    Binary task with a single informative predicate and many noise predicates.

    signal=1 predicts outcome 1 `agreement` of the time; the noise
    predicates are active at random and independent of the outcome.
    """
    rng = np.random.default_rng(seed)
    signal_on, signal_off = 0, 1
    noise_ids = list(range(2, 2 + n_noise))

    contexts = []
    outcomes = []
    for _ in range(n):
        y = int(rng.integers(0, 2))
        agrees = rng.random() < agreement
        signal = signal_on if (y == 1) == agrees else signal_off
        active = [signal] + [f for f in noise_ids if rng.random() < 0.3]
        contexts.append(sorted(active))
        outcomes.append(y)

    indexed = IndexedEvents(
        contexts=contexts,
        outcome_list=outcomes,
        num_times_seen=[1] * n,
        pred_labels=["signal=1", "signal=0"] + [f"noise={i}" for i in range(n_noise)],
        outcome_labels=["neg", "pos"],
    )
    return SyntheticEvents(indexed, "one signal, many noise predicates", informative=[signal_on, signal_off])


def generate_real_valued(n: int = 60, seed: int = 7) -> SyntheticEvents:
    """
    Two outcomes decided by which of two predicates carries the larger value.
    """
    rng = np.random.default_rng(seed)
    contexts = []
    values = []
    outcomes = []
    for _ in range(n):
        a, b = rng.uniform(0.0, 1.0, size=2)
        contexts.append([0, 1])
        values.append([a, b])
        outcomes.append(0 if a > b else 1)

    indexed = IndexedEvents(
        contexts=contexts,
        outcome_list=outcomes,
        num_times_seen=[1] * n,
        pred_labels=["a", "b"],
        outcome_labels=["a_wins", "b_wins"],
        values=values,
    )
    return SyntheticEvents(indexed, "real valued comparison", informative=[0, 1])


def generate_text_events(seed: Optional[int] = 3) -> List[Event]:
    """
    Tiny part-of-speech style events keyed on word and suffix predicates.
    """
    lexicon = {
        "DET": ["the", "a", "this"],
        "NOUN": ["dog", "cat", "house", "idea"],
        "VERB": ["runs", "sleeps", "jumps", "thinks"],
    }
    rng = np.random.default_rng(seed)
    events = []
    for tag, words in lexicon.items():
        for word in words:
            for _ in range(int(rng.integers(2, 5))):
                events.append(Event(tag, (f"w={word}", f"suf={word[-2:]}", "bias")))
    return events
