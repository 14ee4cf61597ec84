import asyncio

import pytest

from holdem.cards import parse_cards
from holdem.models import HandWinners, Player
from holdem.round import Round, RoundStateError

from .helpers import check_down, create_round, make_players, stacked_deck


def test_single_active_player_wins_without_evaluating_cards():
    players = make_players(3)
    players[0].is_active_in_round = False
    players[2].is_active_in_round = False
    # No pockets and no board: any evaluation would fail.
    winners = Round.determine_winners(players, [])
    assert winners.ids == [1]
    assert winners.desc == ""


def test_no_active_players_is_an_invariant_violation():
    players = make_players(2)
    for player in players:
        player.is_active_in_round = False
    with pytest.raises(RoundStateError, match="No active players"):
        Round.determine_winners(players, [])


def test_determine_winners_ignores_inactive_players():
    players = make_players(3)
    players[0].pocket = parse_cards(["Ah", "Ad"])
    players[1].pocket = parse_cards(["2c", "7d"])
    players[2].pocket = parse_cards(["Kh", "Kd"])
    players[0].is_active_in_round = False
    board = parse_cards(["3s", "8h", "9c", "Jd", "4s"])

    winners = Round.determine_winners(players, board)
    assert winners.ids == [2]
    assert winners.desc == "pair"


def test_tied_hands_split_the_pot():
    # Deal order for three players: seat 0, 1, 2, then again. Burns at 6, 10 and 12.
    deck = stacked_deck(
        [
            "As", "Ac", "2s",
            "Qd", "Qc", "3s",
            "5d", "Kh", "Kd", "7s",
            "6d", "4c",
            "8d", "9h",
        ]
    )
    rnd = create_round(seats=3, dealer=0, sb=1, bb=2, deck=deck)

    async def scenario():
        rnd.start()
        await check_down(rnd)

    asyncio.run(scenario())
    state = rnd.get_round()
    assert [card.label for card in state.board] == ["Kh", "Kd", "7s", "4c", "9h"]
    assert state.winners.ids == [0, 1]
    assert state.winners.desc == "pair"
    assert state.pot == 6
    assert [player.chip_count for player in rnd.players] == [1_001, 1_001, 998]


def test_best_hand_takes_whole_pot():
    deck = stacked_deck(
        [
            "2c", "9s",
            "7d", "9d",
            "3h", "9h", "9c", "Ks",
            "4h", "5c",
            "6h", "Jd",
        ]
    )
    rnd = create_round(seats=2, dealer=0, sb=5, bb=10, deck=deck)

    async def scenario():
        rnd.start()
        await check_down(rnd)

    asyncio.run(scenario())
    state = rnd.get_round()
    assert state.winners.ids == [1]
    assert state.winners.desc == "four_of_a_kind"
    assert rnd.players[1].chip_count == 1_010
    assert rnd.players[0].chip_count == 990


def test_payout_splits_even_pot_exactly():
    rnd = create_round(seats=4)
    rnd.get_round().pot = 90
    rnd._payout(HandWinners(ids=[0, 2], desc="flush"))
    assert [player.chip_count for player in rnd.players] == [1_045, 1_000, 1_045, 1_000]


def test_payout_gives_odd_chips_to_earliest_seats():
    rnd = create_round(seats=4)
    rnd.get_round().pot = 100
    rnd._payout(HandWinners(ids=[3, 1, 2], desc="straight"))
    chips = [player.chip_count for player in rnd.players]
    assert chips == [1_000, 1_034, 1_033, 1_033]
    assert sum(chips) - 4_000 == 100
    # Payout leaves the pot figure for observers; the next hand builds a new round.
    assert rnd.get_round().pot == 100


def test_payout_rejects_unknown_winner():
    rnd = create_round(players=[Player(id=0), Player(id=1)])
    rnd.get_round().pot = 10
    with pytest.raises(RoundStateError, match="Unknown winner"):
        rnd._payout(HandWinners(ids=[7]))
