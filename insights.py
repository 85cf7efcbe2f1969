# FILE: insights.py

from collections import Counter
from datetime import date
from typing import List, Optional

import ontology
from config import DEFAULT_PEAK_HOURS_START, DEFAULT_PEAK_HOURS_END
from time_utils import format_clock, parse_clock

ENERGY_POINTS = {"low": 1, "medium": 2, "high": 3}
HIGH_ENERGY_BLOCKS = ("deep_work", "meeting")
HIGH_ENERGY_THRESHOLD = 2.5
ENJOYED_THRESHOLD = 4
DRAINING_ENJOYMENT_CEILING = 3


def calculate_work_patterns(reviews: List[ontology.Review]) -> ontology.WorkPatterns:
    """Aggregates reviews per tag into the tag lists the assistant schedules around."""
    if not reviews:
        return ontology.WorkPatterns()

    tag_stats = {}
    for review in reviews:
        for tag in review.tags:
            stats = tag_stats.setdefault(tag, ontology.TagStats())
            stats.count += 1
            stats.total_enjoyment += review.enjoyment_rating or 0
            stats.total_energy += ENERGY_POINTS.get(review.energy_required, 1)

    patterns = ontology.WorkPatterns(tag_stats=tag_stats)
    for tag, stats in tag_stats.items():
        if stats.avg_energy >= HIGH_ENERGY_THRESHOLD:
            patterns.high_energy_tags.append(tag)
            if stats.avg_enjoyment < DRAINING_ENJOYMENT_CEILING:
                patterns.drained_by_tags.append(tag)
        if stats.avg_enjoyment >= ENJOYED_THRESHOLD:
            patterns.enjoyed_tags.append(tag)

    difficulties = Counter(r.difficulty for r in reviews if r.difficulty)
    if difficulties:
        patterns.preferred_difficulty = difficulties.most_common(1)[0][0]
    return patterns


def peak_hours(profile: Optional[ontology.UserProfile]) -> tuple:
    start = profile.peak_hours_start if profile and profile.peak_hours_start else parse_clock(DEFAULT_PEAK_HOURS_START)
    end = profile.peak_hours_end if profile and profile.peak_hours_end else parse_clock(DEFAULT_PEAK_HOURS_END)
    return start, end


def analyze_schedule(day: date, blocks: List[ontology.TimeBlock], profile: Optional[ontology.UserProfile]) -> str:
    if not blocks:
        return f"No time blocks scheduled for {day.isoformat()}."

    peak_start, peak_end = peak_hours(profile)
    issues = []
    run = 0
    for block in blocks:
        label = block.task_title or block.block_type
        if block.block_type not in HIGH_ENERGY_BLOCKS:
            run = 0
            continue
        run += 1
        if block.start_time < peak_start or block.start_time >= peak_end:
            issues.append(f'- High-energy block "{label}" at {format_clock(block.start_time)} is outside peak hours '
                          f'({format_clock(peak_start)}-{format_clock(peak_end)})')
        if run >= 3:
            issues.append(f"- Cognitive overload risk: 3+ consecutive high-energy blocks around {format_clock(block.start_time)}")

    score = max(0, round(100 - (len(issues) / len(blocks)) * 50))
    lines = [
        f"Schedule Analysis for {day.isoformat()}:",
        f"Optimization Score: {score}%",
        f"Time Blocks: {len(blocks)}",
    ]
    if issues:
        lines.append("Issues Found:")
        lines.extend(issues)
        lines.append("Suggestions:")
        lines.append(f"1. Move high-energy work to peak hours ({format_clock(peak_start)}-{format_clock(peak_end)})")
        lines.append("2. Add breaks between consecutive intense blocks")
        lines.append("3. Consider rescheduling some blocks for better energy alignment")
    else:
        lines.append("Schedule looks well-optimized! Good alignment with your peak hours and energy patterns.")
    return "\n".join(lines)


def summarize_insights(reviews: List[ontology.Review], date_range_days: int,
                       tag_filter: Optional[List[str]] = None) -> str:
    if not reviews:
        return (f"No reviews found in the last {date_range_days} days. "
                "Complete some tasks/projects and review them to get personalized insights!")

    filtered = reviews
    if tag_filter:
        filtered = [r for r in reviews if any(tag in r.tags for tag in tag_filter)]
        if not filtered:
            return f"No reviews found with tags: {', '.join(tag_filter)}"

    total = len(filtered)
    avg_enjoyment = sum(r.enjoyment_rating or 0 for r in filtered) / total
    avg_overall = sum(r.overall_rating or 0 for r in filtered) / total
    energy = Counter(r.energy_required for r in filtered if r.energy_required)
    patterns = calculate_work_patterns(reviews)

    lines = [f"Work Insights (Last {date_range_days} days):"]
    if tag_filter:
        lines.append(f"Filtered by tags: {', '.join(tag_filter)}")
    lines.append(f"Reviews Analyzed: {total}")
    lines.append(f"Average Enjoyment: {avg_enjoyment:.1f}/5")
    lines.append(f"Average Overall Rating: {avg_overall:.1f}/5")
    lines.append("Energy Distribution:")
    for level in ("low", "medium", "high"):
        lines.append(f"  - {level.capitalize()}: {energy[level]} ({round(energy[level] / total * 100)}%)")
    if patterns.enjoyed_tags:
        lines.append(f"Most Enjoyed Work: {', '.join(patterns.enjoyed_tags)}")
    if patterns.drained_by_tags:
        lines.append(f"Draining Work: {', '.join(patterns.drained_by_tags)}")
    lines.append("Recommendations:")
    if patterns.high_energy_tags:
        lines.append(f"- Schedule these during peak hours: {', '.join(patterns.high_energy_tags)}")
    if patterns.enjoyed_tags and patterns.drained_by_tags:
        lines.append("- Alternate draining tasks with enjoyable ones for better motivation")
    lines.append("- Continue tracking reviews to get more personalized insights!")
    return "\n".join(lines)
