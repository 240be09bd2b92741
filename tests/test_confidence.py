from utils.confidence import (
    ASSISTED_SIGNAL,
    CLEAN_SIGNAL,
    FAILED_SIGNAL,
    calculate_confidence,
    review_signal,
)


def test_no_encounters_returns_initial_score():
    assert calculate_confidence(0.9, 0, 0, 0, CLEAN_SIGNAL) == 0.5


def test_clean_success_raises_confidence():
    assert calculate_confidence(0.5, 1, 1, 0, CLEAN_SIGNAL) == 0.825


def test_clean_success_raises_confidence_despite_poor_history():
    # Lifetime accuracy is poor but the answer was clean.
    assert calculate_confidence(0.6, 1, 10, 0, CLEAN_SIGNAL) == 0.72
    assert calculate_confidence(0.5, 1, 10, 0, CLEAN_SIGNAL) == 0.65


def test_clean_success_at_full_confidence_stays_there():
    assert calculate_confidence(1.0, 1, 10, 0, CLEAN_SIGNAL) == 1.0


def test_failure_lowers_confidence():
    assert calculate_confidence(0.8, 4, 5, 0, FAILED_SIGNAL) == 0.56


def test_failure_lowers_confidence_despite_good_history():
    assert calculate_confidence(0.4, 10, 10, 0, FAILED_SIGNAL) == 0.28


def test_helped_answer_never_raises_confidence():
    assert calculate_confidence(0.3, 5, 5, 1, ASSISTED_SIGNAL) == 0.3


def test_help_penalty_is_capped_and_score_clamped():
    score = calculate_confidence(0.0, 0, 10, 50, FAILED_SIGNAL)
    assert score == 0.0


def test_review_signal():
    assert review_signal(True, True) == CLEAN_SIGNAL
    assert review_signal(True, False) == ASSISTED_SIGNAL
    assert review_signal(False, False) == FAILED_SIGNAL
