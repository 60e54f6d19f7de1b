import random
from datetime import datetime
from typing import Optional

FALLBACK_GOAL = "your goal"


def part_of_day(now: datetime) -> str:
    if now.hour < 12:
        return "morning"
    if now.hour < 18:
        return "afternoon"
    return "evening"


def generate_message(goal: str, now: Optional[datetime] = None, rng: Optional[random.Random] = None) -> str:
    """Pick a short nudge for the goal. Wording is cosmetic."""
    goal = goal.strip() or FALLBACK_GOAL
    when = part_of_day(now or datetime.now())
    prompts = [
        f"Quick {when} push: 10 focused minutes on \"{goal}\". Start now.",
        f"Tiny step on \"{goal}\" right now. Open the first tab and begin.",
        f"Momentum beats motivation. What is the next 5-minute action for \"{goal}\"?",
        f"Protect your time: one small commit on \"{goal}\".",
        f"Future-you will thank you. Nudge \"{goal}\" forward.",
    ]
    return (rng or random).choice(prompts)
