from __future__ import annotations

import httpx
import pytest

from autosummary.summaries.openrouter_client import OpenRouterClient, RateLimitError
from autosummary.summaries.prompts import REQUIRED_SECTIONS, PromptLoader, PromptValidationError
from autosummary.summaries.summarizer import OracleError, Summarizer


class StubClient:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.requests = []

    def generate(self, model, messages, **kwargs):
        self.requests.append((model, messages, kwargs))
        if self.error:
            raise self.error
        return type("Result", (), {"content": self.content, "usage": {}})()


@pytest.fixture
def prompt():
    return PromptLoader().load("default")


def test_default_prompt_names_all_sections(prompt):
    for section in REQUIRED_SECTIONS:
        assert section in prompt.content
    assert prompt.path.name == "default.md"


def test_prompt_loader_prefers_project_dir(tmp_path):
    custom = tmp_path / "default.md"
    custom.write_text("Cover " + ", ".join(REQUIRED_SECTIONS), encoding="utf-8")
    assert PromptLoader(prompts_dir=tmp_path).load("default").path == custom


def test_prompt_loader_rejects_incomplete_prompt(tmp_path):
    short = tmp_path / "short.md"
    short.write_text("Purpose only", encoding="utf-8")
    with pytest.raises(PromptValidationError, match="Key Components"):
        PromptLoader().load(str(short))


def test_prompt_loader_unknown_prompt():
    with pytest.raises(FileNotFoundError):
        PromptLoader().load("does-not-exist")


def test_summarize_sends_file_and_strips_reply(prompt):
    client = StubClient(content="\n  Purpose: demo  \n")
    summarizer = Summarizer(client, prompt, model="openai/gpt-4-turbo")

    assert summarizer.summarize("a.ts", "const a = 1;") == "Purpose: demo"

    model, messages, kwargs = client.requests[0]
    assert model == "openai/gpt-4-turbo"
    assert messages[0] == {"role": "system", "content": prompt.content}
    assert messages[1]["content"] == "Summarize the following file:\n\n```\nconst a = 1;\n```"
    assert kwargs == {"temperature": 0.0, "max_tokens": 1000, "seed": 42}


def test_empty_reply_is_an_oracle_error(prompt):
    summarizer = Summarizer(StubClient(content="   "), prompt, model="m")
    with pytest.raises(OracleError) as excinfo:
        summarizer.summarize("a.ts", "x")
    assert excinfo.value.file_path == "a.ts"


def test_client_errors_become_oracle_errors(prompt):
    summarizer = Summarizer(StubClient(error=RateLimitError("slow down")), prompt, model="m")
    with pytest.raises(OracleError, match="slow down") as excinfo:
        summarizer.summarize("a.ts", "x")
    assert isinstance(excinfo.value.__cause__, RateLimitError)


def test_summarize_over_http(prompt):
    def handler(request):
        return httpx.Response(200, json={"choices": [{"message": {"content": "Purpose: http"}}]})

    client = OpenRouterClient("k", transport=httpx.MockTransport(handler), sleep=lambda s: None)
    assert Summarizer(client, prompt, model="m").summarize("a.yml", "on: push") == "Purpose: http"
