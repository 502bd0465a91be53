"""
Shared fixtures for analyst tests.

Run with: pytest  (from the repository root)
"""

import asyncio
from typing import List

import pytest

from analyst.config import Settings
from analyst.schemas import AIContext, ArtistProfile, Opportunity


class FailingCompletionService:
    """Completion service whose every call fails."""

    provider_id = "failing"

    def __init__(self) -> None:
        self.embed_calls = 0
        self.complete_calls = 0

    async def embed(self, text: str) -> List[float]:
        self.embed_calls += 1
        raise RuntimeError("embedding backend unavailable")

    async def complete_queries(self, context: AIContext, count: int) -> List[str]:
        self.complete_calls += 1
        raise RuntimeError("completion backend unavailable")


class SlowCompletionService:
    """Completion service that never answers within a short timeout."""

    provider_id = "slow"

    async def embed(self, text: str) -> List[float]:
        await asyncio.sleep(5)
        return [1.0, 0.0]

    async def complete_queries(self, context: AIContext, count: int) -> List[str]:
        await asyncio.sleep(5)
        return ["too late"]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep exported settings such as ANTHROPIC_API_KEY out of every test."""
    for name in Settings.model_fields:
        monkeypatch.delenv(name.upper(), raising=False)
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings():
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        completion_provider="mock",
        cache_backend="memory",
        completion_timeout_seconds=0.2,
    )


@pytest.fixture
def failing_completion():
    return FailingCompletionService()


@pytest.fixture
def slow_completion():
    return SlowCompletionService()


@pytest.fixture
def painter_profile():
    """A professional painter/sculptor based in Brooklyn."""
    return ArtistProfile(
        id="artist-1",
        name="Ada Moreno",
        bio="Painter working with large canvases and public commissions.",
        artist_statement="My work explores memory and landscape through layered oil paint.",
        mediums=["Painting", "Sculpture"],
        skills=["Color Theory", "Oil Painting", "Marketing", "Photoshop"],
        interests=["Contemporary abstraction", "community projects"],
        experience="Professional artist, exhibited in galleries for 12 years",
        location="Brooklyn, NY",
    )


@pytest.fixture
def empty_profile():
    return ArtistProfile(id="artist-empty")


@pytest.fixture
def painting_opportunity():
    return Opportunity(
        id="opp-1",
        title="Painting Fellowship for Established Artists",
        description="A fellowship supporting painting and sculpture practices in New York.",
        organization="Brooklyn Arts Council",
        location="Brooklyn, NY",
        amount=5000,
        tags=["painting", "fellowship", "sculpture"],
    )


@pytest.fixture
def unrelated_opportunity():
    return Opportunity(
        id="opp-2",
        title="Software Engineering Bootcamp",
        description="Learn backend development with Java and cloud tooling.",
        location="Seattle, WA",
        tags=["coding"],
    )
