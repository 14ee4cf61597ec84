from __future__ import annotations

import itertools
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .cards import Card
from .models import HandWinners

RANK_ORDER = "23456789TJQKA"
RANK_VALUE = {rank: idx for idx, rank in enumerate(RANK_ORDER, start=2)}

HAND_NAMES = {
    8: "straight_flush",
    7: "four_of_a_kind",
    6: "full_house",
    5: "flush",
    4: "straight",
    3: "three_of_a_kind",
    2: "two_pair",
    1: "pair",
    0: "high_card",
}

# Rank-count shapes of five cards, largest group first.
GROUP_CATEGORIES = {
    (4, 1): 7,
    (3, 2): 6,
    (3, 1, 1): 3,
    (2, 2, 1): 2,
    (2, 1, 1, 1): 1,
    (1, 1, 1, 1, 1): 0,
}

Score = Tuple[int, List[int]]


@dataclass
class PlayerCards:
    id: int
    cards: List[Card]


def evaluate_best(cards: Sequence[Card]) -> Score:
    """Return a strength tuple for the best 5 of up to 7 cards. Higher is better."""
    if len(cards) < 5:
        raise ValueError(f"Need at least 5 cards to evaluate, got {len(cards)}")
    best: Optional[Score] = None
    for combo in itertools.combinations(cards, 5):
        rank = _evaluate_five(combo)
        if best is None or rank > best:
            best = rank
    assert best is not None
    return best


def describe_rank(score: Score) -> str:
    category, _ = score
    return HAND_NAMES[category]


def determine_winners(player_cards: Sequence[PlayerCards]) -> HandWinners:
    """Pick every id holding the best hand. Ties keep input order."""
    if not player_cards:
        return HandWinners()

    scores: Dict[int, Score] = {entry.id: evaluate_best(entry.cards) for entry in player_cards}
    best = max(scores.values())
    ids = [entry.id for entry in player_cards if scores[entry.id] == best]
    return HandWinners(ids=ids, desc=describe_rank(best))


def _rank_groups(cards: Iterable[Card]) -> List[Tuple[int, int]]:
    counts = Counter(RANK_VALUE[card.rank] for card in cards)
    return sorted(((count, value) for value, count in counts.items()), reverse=True)


def _evaluate_five(cards: Iterable[Card]) -> Score:
    cards = list(cards)
    groups = _rank_groups(cards)
    category = GROUP_CATEGORIES[tuple(count for count, _ in groups)]
    values = [value for _, value in groups]
    if category == 0:
        flush = len({card.suit for card in cards}) == 1
        straight = _straight_high(cards)
        if straight and flush:
            return (8, [straight])
        if flush:
            return (5, values)
        if straight:
            return (4, [straight])
    return (category, values)


def _straight_high(cards: Iterable[Card]) -> Optional[int]:
    ranks = {RANK_VALUE[card.rank] for card in cards}
    if 14 in ranks:  # Ace low
        ranks.add(1)
    ordered = sorted(ranks, reverse=True)
    for idx in range(len(ordered) - 4):
        window = ordered[idx : idx + 5]
        if window == list(range(window[0], window[0] - 5, -1)):
            return window[0]
    return None
