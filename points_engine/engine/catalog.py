"""Static catalogs: redeemable rewards, social tasks and quiz tiers."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from points_engine.utils.errors import InvalidInputError, NotFoundError

SPIN = "spin"
SCRATCH = "scratch"
QUIZ = "quiz"
QUOTA_ACTIVITIES = (SPIN, SCRATCH, QUIZ)

# Ledger source tags
SOURCE_SIGNUP = "signup"
SOURCE_SPIN = "spin_win"
SOURCE_SCRATCH = "scratch_earn"
SOURCE_QUIZ = "quiz"
SOURCE_REDEMPTION = "redemption"
SOURCE_ADMIN_ADJUSTMENT = "admin_adjustment"


def task_source(task_id: str) -> str:
    """Return the ledger source tag for a social task payout."""
    return f"task:{task_id}"


def ensure_activity(activity: str) -> str:
    """Validate a quota-limited activity name."""
    if activity not in QUOTA_ACTIVITIES:
        raise InvalidInputError(f"Unknown activity {activity!r}")
    return activity


@dataclass(frozen=True)
class RewardPlan:
    duration: str
    points: int


@dataclass(frozen=True)
class Reward:
    """A redeemable subscription with its duration tiers."""

    id: str
    name: str
    category: str
    plans: tuple[RewardPlan, ...]

    def plan(self, duration: str) -> RewardPlan:
        for plan in self.plans:
            if plan.duration == duration:
                return plan
        raise NotFoundError(f"{self.name} plan '{duration}'")


def _plans(*pairs: tuple[str, int]) -> tuple[RewardPlan, ...]:
    return tuple(RewardPlan(duration, points) for duration, points in pairs)


REWARDS: tuple[Reward, ...] = (
    Reward(
        "youtube_premium",
        "YouTube Premium",
        "streaming",
        _plans(
            ("1 Month", 1000),
            ("2 Months", 1900),
            ("3 Months", 2700),
            ("6 Months", 5200),
            ("1 Year", 9500),
        ),
    ),
    Reward(
        "netflix",
        "Netflix",
        "streaming",
        _plans(
            ("1 Month", 1400),
            ("2 Months", 2650),
            ("3 Months", 3800),
            ("6 Months", 7300),
            ("1 Year", 13500),
        ),
    ),
    Reward(
        "amazon_prime",
        "Amazon Prime",
        "streaming",
        _plans(("1 Month", 1200), ("3 Months", 3200), ("6 Months", 6000), ("1 Year", 11000)),
    ),
    Reward(
        "spotify_premium",
        "Spotify Premium",
        "music",
        _plans(
            ("1 Month", 900),
            ("2 Months", 1700),
            ("3 Months", 2400),
            ("6 Months", 4500),
            ("1 Year", 8200),
        ),
    ),
    Reward(
        "jiosaavn_pro",
        "JioSaavn Pro",
        "music",
        _plans(("1 Month", 700), ("3 Months", 1800), ("6 Months", 3200), ("1 Year", 5500)),
    ),
    Reward(
        "disney_hotstar",
        "Disney+ Hotstar",
        "streaming",
        _plans(("1 Month", 800), ("3 Months", 2100), ("6 Months", 3800), ("1 Year", 6500)),
    ),
    Reward(
        "apple_music",
        "Apple Music",
        "music",
        _plans(
            ("1 Month", 1100),
            ("2 Months", 2000),
            ("3 Months", 2900),
            ("6 Months", 5500),
            ("1 Year", 10000),
        ),
    ),
    Reward(
        "sony_liv",
        "Sony LIV",
        "streaming",
        _plans(("1 Month", 600), ("3 Months", 1500), ("6 Months", 2700), ("1 Year", 4500)),
    ),
    Reward(
        "telegram_premium",
        "Telegram Premium",
        "social",
        _plans(("1 Month", 500), ("3 Months", 1300), ("6 Months", 2400), ("1 Year", 4000)),
    ),
)


def get_reward(reward_id: str, rewards: Sequence[Reward] = REWARDS) -> Reward:
    """Return a reward by id or raise NotFoundError."""
    for reward in rewards:
        if reward.id == reward_id:
            return reward
    raise NotFoundError("Reward")


@dataclass(frozen=True)
class SocialTask:
    id: str
    title: str
    task_type: str
    points: int
    action_url: str | None = None
    # Name of the membership check that must pass before payout, if any
    verification: str | None = None


TASKS: tuple[SocialTask, ...] = (
    SocialTask(
        "telegram_join",
        "Join Our Telegram Channel",
        "telegram",
        100,
        "https://t.me/SKModTechOfficial",
        verification="telegram",
    ),
    SocialTask("youtube_subscribe", "Subscribe to YouTube Channel", "youtube", 150),
    SocialTask("instagram_follow", "Follow on Instagram", "instagram", 120),
    SocialTask("twitter_follow", "Follow on Twitter/X", "twitter", 120),
)

_TASKS_BY_ID = {task.id: task for task in TASKS}


def get_task(task_id: str) -> SocialTask:
    """Return a social task by id or raise NotFoundError."""
    task = _TASKS_BY_ID.get(task_id)
    if task is None:
        raise NotFoundError("Task")
    return task


QUIZ_POINTS_PER_ANSWER = {"easy": 10, "medium": 20, "hard": 30}


def quiz_points(difficulty: str, correct_answers: int, total_questions: int) -> int:
    """Return the points earned for a finished quiz."""
    rate = QUIZ_POINTS_PER_ANSWER.get(difficulty)
    if rate is None:
        raise InvalidInputError(f"Unknown quiz difficulty {difficulty!r}")
    if total_questions < 1:
        raise InvalidInputError("A quiz needs at least one question")
    if not 0 <= correct_answers <= total_questions:
        raise InvalidInputError("Correct answers must be between 0 and the question count")
    return correct_answers * rate
