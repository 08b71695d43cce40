"""
Pytest configuration and shared fixtures
"""

import random
import sys
from pathlib import Path

import pytest

# Add source directory to Python path for imports
REPO_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(REPO_ROOT / "src"))


@pytest.fixture
def clean_chart():
    """A well-formatted chart that scores 100%"""
    return (
        "{title: Amazing Grace}\n"
        "{artist: John Newton}\n"
        "{key: G}\n"
        "\n"
        "[Verse 1]\n"
        "[G]Amazing grace, how [C]sweet the [G]sound\n"
        "That saved a wretch like [D]me\n"
        "\n"
        "[Verse 2]\n"
        "[G]Twas grace that [C]taught my [G]heart to fear\n"
        "And grace my fears [D]relieved"
    )


@pytest.fixture
def messy_chart():
    """A chart with one of every fixable problem"""
    return (
        "{title: Amazing Grace}\n"
        "\n"
        "\n"
        "\n"
        "[g]Amazing grace, how [c]sweet the [G]sound   \n"
        "That saved a wretch like [D]me\n"
        "\n"
        "[G]I once was lost, but [C]now am [G]found\n"
        "Was blind, but [D]now I [G]see"
    )


@pytest.fixture
def repeated_chorus_chart():
    """Unlabeled verse / chorus / verse / chorus"""
    return (
        "{title: Roll On}\n"
        "{artist: Traditional}\n"
        "{key: D}\n"
        "\n"
        "[D]Down the road a [G]piece I go\n"
        "[A]Walking slow\n"
        "\n"
        "[D]Roll on, roll [G]on, my [A]darling\n"
        "[D]Roll on home\n"
        "\n"
        "[D]Up the hill the [G]rain comes down\n"
        "[A]Through the town\n"
        "\n"
        "[D]Roll on, roll [G]on, my [A]darling\n"
        "[D]Roll on home"
    )


CHART_LINES = [
    "{title: Some Song}",
    "{title: }",
    "{artist: Someone}",
    "{key: G}",
    "{comment: Chorus}",
    "{start_of_chorus}",
    "{end_of_chorus}",
    "[Verse]",
    "[Chorus]",
    "[G]",
    "",
    "",
    "   ",
    "[G]Amazing [C]grace",
    "[g]how [c]sweet the [d7]sound",
    "  [Am]that saved a [F]wretch  ",
    "[G][C]like me",
    "[Xyz]I once was [G]lost",
    "[AM7]but now am [D]found",
    "[ g ]was blind but [D/f#]now I see",
    "plain lyric line",
    "[unclosed bracket line",
    "stray ] bracket",
    "G  C  D  G",
    "[C♯m]sharp [B♭]flat",
    "\t[Em]tabbed line",
]


CHORD_OVER_LYRIC_LINES = [
    "{title: Some Song}",
    "{artist: Someone}",
    "{key: D}",
    "[Chorus]",
    "",
    "",
    "  ",
    "G       C",
    "  D     G  ",
    "Em  Am7  D/F#",
    "N.C.",
    "G  C  Xyz",
    "Amazing grace how sweet",
    "   the sound   ",
    "A day in the life",
    "la la la",
    "[g]inline [C]chords",
    "1  4  5",
]


def build_random_chart(rng: random.Random, max_lines: int = 25, pool=CHART_LINES) -> str:
    """Assemble a chart from a line pool, with repeats, in random order"""
    count = rng.randint(0, max_lines)
    return "\n".join(rng.choice(pool) for _ in range(count))


@pytest.fixture
def random_charts():
    """A deterministic set of random charts"""
    rng = random.Random(20240611)
    return [build_random_chart(rng) for _ in range(200)]


@pytest.fixture
def chord_over_lyric_charts():
    """Random charts built mostly from chord lines and plain lyrics"""
    rng = random.Random(20240612)
    return [build_random_chart(rng, pool=CHORD_OVER_LYRIC_LINES) for _ in range(200)]
