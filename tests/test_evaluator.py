import pytest

from holdem.cards import Card, build_deck, parse_cards
from holdem.evaluator import PlayerCards, describe_rank, determine_winners, evaluate_best


def test_evaluate_best_identifies_all_hand_categories():
    cases = [
        (8, ["Ah", "Kh", "Qh", "Jh", "Th"]),  # straight flush
        (7, ["As", "Ah", "Ad", "Ac", "Kd"]),  # four of a kind
        (6, ["Qc", "Qd", "Qs", "9h", "9s"]),  # full house
        (5, ["Ah", "Jh", "9h", "6h", "2h"]),  # flush
        (4, ["9h", "8d", "7c", "6s", "5h"]),  # straight
        (3, ["8h", "8d", "8s", "Qd", "Js"]),  # three of a kind
        (2, ["7h", "7d", "4s", "4c", "As"]),  # two pair
        (1, ["6h", "6s", "Qh", "8d", "4c"]),  # one pair
        (0, ["As", "Kd", "Jh", "9c", "4d"]),  # high card
    ]

    for expected_rank, labels in cases:
        rank, _ = evaluate_best(parse_cards(labels))
        assert rank == expected_rank, f"labels={labels}"


def test_evaluate_best_handles_wheel_straight():
    rank, detail = evaluate_best(parse_cards(["Ah", "2d", "3c", "4s", "5h", "9d", "Kd"]))
    assert rank == 4
    assert detail[0] == 5


def test_six_card_run_reports_highest_straight():
    rank, detail = evaluate_best(parse_cards(["4h", "5d", "6c", "7s", "8h", "9d", "2c"]))
    assert rank == 4
    assert detail[0] == 9


def test_evaluate_best_compares_kickers_for_equal_pairs():
    hand_a = parse_cards(["Ah", "Ad", "Kc", "Qs", "9h", "2d", "3c"])
    hand_b = parse_cards(["Ah", "Ad", "Qc", "Js", "8h", "2d", "3c"])
    assert evaluate_best(hand_a) > evaluate_best(hand_b)


def test_evaluate_best_needs_five_cards():
    with pytest.raises(ValueError, match="at least 5 cards"):
        evaluate_best(parse_cards(["Ah", "Kd"]))


def test_describe_rank_names_category():
    assert describe_rank(evaluate_best(parse_cards(["Qc", "Qd", "Qs", "9h", "9s"]))) == "full_house"
    assert describe_rank((0, [14])) == "high_card"


def test_determine_winners_returns_every_tied_id():
    board = ["Ah", "Kh", "Qd", "Jc", "Ts"]
    entries = [
        PlayerCards(id=4, cards=parse_cards(["2c", "3d"] + board)),
        PlayerCards(id=1, cards=parse_cards(["4c", "5d"] + board)),
        PlayerCards(id=2, cards=parse_cards(["6c", "7d"] + board)),
    ]
    winners = determine_winners(entries)
    assert winners.ids == [4, 1, 2]
    assert winners.desc == "straight"


def test_determine_winners_picks_single_best():
    board = ["2h", "7c", "9d", "Js", "Kc"]
    entries = [
        PlayerCards(id=0, cards=parse_cards(["Ah", "3d"] + board)),
        PlayerCards(id=1, cards=parse_cards(["Jd", "Jh"] + board)),
        PlayerCards(id=2, cards=parse_cards(["Kd", "Qd"] + board)),
    ]
    winners = determine_winners(entries)
    assert winners.ids == [1]
    assert winners.desc == "three_of_a_kind"


def test_card_validation_rejects_invalid_labels():
    with pytest.raises(ValueError, match="Invalid rank"):
        Card("1", "h")
    with pytest.raises(ValueError, match="Invalid suit"):
        Card("A", "x")


def test_seven_card_hands_from_a_shuffled_deck():
    deck = build_deck(seed=777)
    for idx in range(0, 42, 7):
        rank, detail = evaluate_best(deck[idx : idx + 7])
        assert 0 <= rank <= 8
        assert isinstance(detail, list)


def test_grouped_ranks_break_ties_by_group_then_kicker():
    # Trips decide a full house before the pair does.
    assert evaluate_best(parse_cards(["Kc", "Kd", "Ks", "2h", "2s"])) > evaluate_best(
        parse_cards(["Qc", "Qd", "Qs", "Ah", "As"])
    )
    assert evaluate_best(parse_cards(["7h", "7d", "4s", "4c", "As"])) == (2, [7, 4, 14])
    assert evaluate_best(parse_cards(["9s", "9h", "9d", "9c", "3d"])) == (7, [9, 3])
    assert evaluate_best(parse_cards(["Ah", "Jh", "9h", "6h", "2h"])) == (5, [14, 11, 9, 6, 2])
