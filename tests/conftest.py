"""
Pytest configuration and fixtures for Modflow tests.
"""

import os
import sys
import tempfile
from pathlib import Path

# Keep session logs out of the repository while testing
os.environ.setdefault("MODFLOW_LOG_DIR", tempfile.mkdtemp(prefix="modflow-logs-"))

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from typing import List  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from modflow.ai import prompts  # noqa: E402
from modflow.ai.ai_clients import AIClients  # noqa: E402
from modflow.ai.analysis import ModerationCapabilities  # noqa: E402
from modflow.database.db_connection import ConnectionManager  # noqa: E402
from modflow.datatypes.moderation_datatypes import GeneratedImage  # noqa: E402
from modflow.repositories.submission_repo import SubmissionRepository  # noqa: E402

SAFE_TEXT_RESPONSE = '{"toxicity": 0.1, "nsfw_text": false, "summary": "Friendly greeting"}'
APPROVED_DECISION_RESPONSE = (
    '{"decision": "approved", "summary": "Safe content", '
    '"technicalAnalysis": {"nsfw_image": false, "violence": false}}'
)
SAFE_DESCRIPTION = "A golden retriever sitting on a green lawn. No NSFW or violent content."
INLINE_IMAGE = "data:image/jpeg;base64,AAAA"


class FakeReasoningClient:
    """Answers text-analysis and decision prompts with canned responses.

    A response may be an exception instance, which is raised instead.
    """

    def __init__(self, text_response=SAFE_TEXT_RESPONSE, decision_response=APPROVED_DECISION_RESPONSE):
        self.text_response = text_response
        self.decision_response = decision_response
        self.calls: List[tuple] = []

    async def invoke(self, system_instruction: str, user_text: str) -> str:
        self.calls.append((system_instruction, user_text))
        if system_instruction == prompts.TEXT_ANALYSIS_SYSTEM_PROMPT:
            response = self.text_response
        else:
            response = self.decision_response
        if isinstance(response, BaseException):
            raise response
        return response

    @property
    def decision_calls(self) -> List[tuple]:
        return [c for c in self.calls if c[0] == prompts.DECISION_SYSTEM_PROMPT]


class FakeVisionClient:
    """Returns queued descriptions in order, repeating the last one."""

    def __init__(self, *descriptions):
        self.descriptions = list(descriptions) or [SAFE_DESCRIPTION]
        self.calls: List[list] = []

    async def invoke(self, parts) -> str:
        self.calls.append(parts)
        index = min(len(self.calls) - 1, len(self.descriptions) - 1)
        response = self.descriptions[index]
        if isinstance(response, BaseException):
            raise response
        return response


class FakeGenerationClient:
    def __init__(self, result=None):
        self.result = result if result is not None else GeneratedImage(url="https://images.example.com/generated.png")
        self.prompts: List[str] = []

    async def invoke(self, prompt: str) -> GeneratedImage:
        self.prompts.append(prompt)
        if isinstance(self.result, BaseException):
            raise self.result
        return self.result


async def fake_load_image(url: str) -> str:
    return INLINE_IMAGE


@pytest.fixture
def reasoning() -> FakeReasoningClient:
    return FakeReasoningClient()


@pytest.fixture
def vision() -> FakeVisionClient:
    return FakeVisionClient()


@pytest.fixture
def generation() -> FakeGenerationClient:
    return FakeGenerationClient()


@pytest.fixture
def capabilities(reasoning, vision, generation) -> ModerationCapabilities:
    return ModerationCapabilities(
        AIClients(reasoning=reasoning, vision=vision, generation=generation),
        timeout=5,
        load_image=fake_load_image,
    )


@pytest_asyncio.fixture
async def db(tmp_path: Path):
    """Open a fresh SQLite database for one test."""
    manager = ConnectionManager()
    await manager.open(tmp_path / "modflow.db")
    yield manager
    await manager.close()


@pytest.fixture
def repo(db) -> SubmissionRepository:
    return SubmissionRepository(db)
