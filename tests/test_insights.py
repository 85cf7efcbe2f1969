from datetime import date, time

import ontology
from insights import analyze_schedule, calculate_work_patterns, summarize_insights

DAY = date(2025, 1, 15)


def review(tags, enjoyment, energy, difficulty=None, overall=4):
    return ontology.Review(kind="task", subject="t", tags=tags, enjoyment_rating=enjoyment,
                           overall_rating=overall, energy_required=energy, difficulty=difficulty)


def block(block_id, start, end, block_type="deep_work"):
    return ontology.TimeBlock(id=block_id, date=DAY, start_time=start, end_time=end, block_type=block_type)


def test_work_patterns_classify_tags():
    reviews = [
        review(["coding"], 5, "high", "hard"),
        review(["coding"], 4, "high", "hard"),
        review(["admin"], 2, "high", "easy"),
        review(["email"], 4, "low", "easy"),
        review(["email"], 5, "low", "hard"),
    ]
    patterns = calculate_work_patterns(reviews)

    assert patterns.high_energy_tags == ["coding", "admin"]
    assert patterns.drained_by_tags == ["admin"]
    assert patterns.enjoyed_tags == ["coding", "email"]
    assert patterns.preferred_difficulty == "hard"
    assert patterns.tag_stats["coding"].count == 2


def test_no_reviews_means_no_patterns():
    patterns = calculate_work_patterns([])
    assert patterns.high_energy_tags == []
    assert patterns.preferred_difficulty is None


def test_well_placed_schedule_scores_full_marks():
    result = analyze_schedule(DAY, [block(1, time(9), time(11)), block(2, time(13), time(14), "shallow_work")], None)
    assert "Optimization Score: 100%" in result
    assert "Schedule looks well-optimized!" in result


def test_three_consecutive_intense_blocks_are_flagged():
    blocks = [block(1, time(9), time(10)), block(2, time(10), time(11), "meeting"), block(3, time(11), time(12))]
    result = analyze_schedule(DAY, blocks, None)
    assert "Cognitive overload risk" in result
    assert "Optimization Score: 83%" in result


def test_peak_hours_come_from_profile():
    profile = ontology.UserProfile(user_id="u", peak_hours_start=time(14), peak_hours_end=time(17))
    result = analyze_schedule(DAY, [block(1, time(15), time(16))], profile)
    assert "Optimization Score: 100%" in result


def test_insights_summary():
    reviews = [review(["coding"], 5, "high", overall=5), review(["admin"], 3, "low", overall=3)]
    result = summarize_insights(reviews, 30)
    assert result.startswith("Work Insights (Last 30 days):")
    assert "Reviews Analyzed: 2" in result
    assert "Average Enjoyment: 4.0/5" in result
    assert "  - High: 1 (50%)" in result


def test_insights_tag_filter_without_matches():
    reviews = [review(["coding"], 5, "high")]
    assert summarize_insights(reviews, 30, ["cooking"]) == "No reviews found with tags: cooking"
