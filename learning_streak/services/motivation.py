import random
from typing import Dict, Optional, Protocol, Sequence, Tuple

MILESTONES: Tuple[int, ...] = (3, 7, 14, 21, 30, 50, 100)

MILESTONE_MESSAGES: Dict[int, str] = {
    1: "Great start! Learning something new every day builds powerful habits. 🚀",
    2: "Two days in a row! You're building momentum. Keep going! 💪",
    3: "3-day streak! You're forming a solid learning routine. 🌟",
    5: "5 days! You're becoming a consistent learner. Amazing work! 🎯",
    7: "One week streak! You've built a strong learning habit. 🏆",
    14: "Two weeks! Your dedication is inspiring. Keep crushing it! 🔥",
    21: "21 days! You've officially formed a learning habit. Legend! ⚡",
    30: "30 DAY STREAK! You're a learning machine! Incredible! 🎉",
    50: "50 days! You're in the top 1% of consistent learners! 🌈",
    100: "100 DAY STREAK! You're a learning superstar! Unstoppable! 💎",
}

# Checked top down, first threshold reached wins
BANDED_MESSAGES: Tuple[Tuple[int, str], ...] = (
    (50, "You're an inspiration! Your consistency is remarkable. 🌟"),
    (30, "Incredible dedication! You're mastering the art of consistency. 💎"),
    (14, "Outstanding commitment! Your learning habit is strong. 🔥"),
    (7, "Great work! You're building a powerful learning routine. ⚡"),
    (3, "Keep it up! You're developing a valuable habit. 💪"),
)

GENERIC_MESSAGES: Tuple[str, ...] = (
    "Keep the streak alive! Every day counts. 🌟",
    "Your consistency is paying off! 🚀",
    "Learning every day is the secret to mastery. 💪",
    "You're building an incredible skill - consistency! 🔥",
    "The compound effect of daily learning is powerful! ⚡",
)

COUNTDOWN_WINDOW = 3


class RandomSource(Protocol):
    def choice(self, seq: Sequence[str]) -> str:
        ...


def upcoming_milestone(streak: int, milestones: Sequence[int] = MILESTONES) -> Optional[int]:
    """Smallest milestone strictly above streak, None past the last one"""
    for milestone in milestones:
        if milestone > streak:
            return milestone
    return None


def next_milestone(streak: int) -> int:
    return upcoming_milestone(streak) or MILESTONES[-1]


def streak_progress(streak: int) -> int:
    """Percent of the way to the next milestone, 0-100"""
    target = upcoming_milestone(streak)
    if target is None:
        return 100
    return round(min(100.0, streak / target * 100))


def countdown_message(days_to_go: int, milestone: int) -> str:
    plural = "s" if days_to_go > 1 else ""
    return f"Only {days_to_go} day{plural} until your {milestone}-day streak! Keep going! 🎯"


def motivational_message(streak: int, rng: Optional[RandomSource] = None) -> str:
    if streak in MILESTONE_MESSAGES:
        return MILESTONE_MESSAGES[streak]

    target = upcoming_milestone(streak)
    if target is not None:
        days_to_go = target - streak
        if days_to_go <= COUNTDOWN_WINDOW:
            return countdown_message(days_to_go, target)

    for threshold, message in BANDED_MESSAGES:
        if streak >= threshold:
            return message

    # Every non-negative streak is caught above; kept for out-of-range input
    return (rng or random).choice(GENERIC_MESSAGES)
