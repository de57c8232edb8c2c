from __future__ import annotations

import random
from typing import Iterable


PROMPTS_BY_CATEGORY: dict[str, list[str]] = {
    "silly": [
        "A terrible theme for a surprise birthday party",
        "The secret ingredient in grandma's famous soup",
        "A new holiday that deserves a day off",
        "Worst message to find in a fortune cookie",
        "A questionable use for a smart fridge",
        "The least intimidating name for a pirate ship",
        "A rejected flavor of potato chips",
    ],
    "popCulture": [
        "The sequel to a children's book that nobody expected",
        "A rejected motto for a superhero",
        "Describe the internet in four words",
        "A reality show that should never be made",
        "The worst song to play at a wedding",
        "A celebrity endorsement nobody wanted",
    ],
    "darkHumor": [
        "Something you should never yell in a crowded elevator",
        "The worst thing to find in your will",
        "An unsettling thing for a GPS to say",
        "A slogan for the world's worst airline",
        "The last thing you want to hear from your surgeon",
    ],
    "workplace": [
        "Describe Mondays without using the word Monday",
        "The worst reply-all email ever sent",
        "A mandatory team-building activity nobody survives",
        "The real reason the printer is always broken",
        "A job title that means absolutely nothing",
    ],
    "relationships": [
        "The weirdest thing to say to your neighbor",
        "A dealbreaker on a first date",
        "The worst way to say I love you",
        "A terrible gift for an anniversary",
        "What your houseplants say about you behind your back",
    ],
    "absurd": [
        "An invention that nobody asked for",
        "Add a plot twist to a fairy tale",
        "What aliens really think of Earth",
        "The official sport of the moon",
        "A law that only applies to squirrels",
        "What the ocean would say if it could talk",
    ],
}

PROMPT_CATEGORIES: tuple[str, ...] = tuple(PROMPTS_BY_CATEGORY)

SAFETY_QUIPS: tuple[str, ...] = (
    "I was too busy being fabulous to answer",
    "My dog ate my answer",
    "Error 404: wit not found",
    "I plead the fifth",
    "Something something bananas",
    "Ask me again after coffee",
)


def prompt_pool(categories: Iterable[str] | None = None) -> list[str]:
    """Deduplicated prompts for ``categories``, or every prompt when none match."""
    wanted = [c for c in (categories or []) if c in PROMPTS_BY_CATEGORY]
    if not wanted:
        wanted = list(PROMPT_CATEGORIES)
    pool: list[str] = []
    for category in wanted:
        pool.extend(PROMPTS_BY_CATEGORY[category])
    return list(dict.fromkeys(pool))


def pick_prompts(count: int, categories: Iterable[str] | None = None) -> list[str]:
    """Draw ``count`` prompts without replacement.

    Once the pool runs dry a fresh copy is shuffled in, so very large counts
    repeat prompts across reshuffles.
    """
    source = prompt_pool(categories)
    pool = list(source)
    picks: list[str] = []
    while len(picks) < count:
        if not pool:
            pool = list(source)
            random.shuffle(pool)
        picks.append(pool.pop(random.randrange(len(pool))))
    return picks


def pick_prompts_with_custom(
    count: int,
    custom_prompts: Iterable[str] | None = None,
    categories: Iterable[str] | None = None,
) -> list[str]:
    """Custom prompts go in first, the rest are drawn; the result is shuffled."""
    custom = [p for p in dict.fromkeys(p.strip() for p in (custom_prompts or [])) if p]
    picks = custom[:count]
    if len(picks) < count:
        picks.extend(pick_prompts(count - len(picks), categories))
    random.shuffle(picks)
    return picks


def get_random_safety_quip() -> str:
    return random.choice(SAFETY_QUIPS)
