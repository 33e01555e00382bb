"""Code execution collaborator used to grade CODE steps.

``HttpCodeRunner`` talks to a JDoodle-compatible execute endpoint; every
test case is one synchronous request bounded by ``CODE_RUN_TIMEOUT_SEC``.
Failures surface as :class:`CodeRunnerError` and the grader turns them into a
zero score.
"""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Protocol, Sequence

import httpx

from . import config
from .errors import CodeRunnerError
from .intake_steps import TestCase

log = logging.getLogger(__name__)

LANGUAGE_VERSIONS: Dict[str, tuple[str, str]] = {
    "javascript": ("nodejs", "4"),
    "typescript": ("nodejs", "4"),
    "python": ("python3", "4"),
    "java": ("java", "4"),
    "cpp": ("cpp17", "1"),
    "go": ("go", "4"),
    "rust": ("rust", "4"),
}

_TRAILING_WS = re.compile(r"[ \t\r\f\v]+$", re.M)


@dataclass
class TestCaseResult:
    __test__ = False

    index: int
    input: str
    expected_output: str
    actual_output: str
    passed: bool
    is_hidden: bool = False
    weight: float = 1.0
    error: str = ""

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "input": self.input,
            "expected_output": self.expected_output,
            "actual_output": self.actual_output,
            "passed": self.passed,
            "error": self.error,
        }


class CodeRunner(Protocol):
    def run(self, code: str, language: str, test_cases: Sequence[TestCase]) -> List[TestCaseResult]: ...


def normalize_output(text: str) -> str:
    return _TRAILING_WS.sub("", (text or "").replace("\r\n", "\n")).strip()


def outputs_match(actual: str, expected: str) -> bool:
    return normalize_output(actual) == normalize_output(expected)


def weighted_pass_ratio(results: Sequence[TestCaseResult]) -> float:
    total = sum(r.weight for r in results)
    if total <= 0:
        return 0.0
    return sum(r.weight for r in results if r.passed) / total


class HttpCodeRunner:
    """Runs each test case through a remote execute API with stdin = test input."""

    def __init__(
        self,
        url: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.url = url or config.CODE_RUNNER_URL
        self.client_id = client_id if client_id is not None else os.getenv("JDOODLE_CLIENT_ID", "")
        self.client_secret = client_secret if client_secret is not None else os.getenv("JDOODLE_CLIENT_SECRET", "")
        self.timeout = timeout if timeout is not None else config.CODE_RUN_TIMEOUT_SEC
        self._transport = transport

    def _execute(self, client: httpx.Client, code: str, language: str, stdin: str) -> str:
        lang = LANGUAGE_VERSIONS.get(language.lower())
        if lang is None:
            raise CodeRunnerError(f"unsupported language: {language}")
        resp = client.post(
            self.url,
            json={
                "clientId": self.client_id,
                "clientSecret": self.client_secret,
                "script": code,
                "language": lang[0],
                "versionIndex": lang[1],
                "stdin": stdin,
            },
        )
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, dict):
            raise CodeRunnerError(f"code runner returned {type(data).__name__}, expected an object")
        status = data.get("statusCode", 200)
        if status != 200:
            raise CodeRunnerError(f"execution error (status {status}): {str(data.get('output') or '')[:200]}")
        return str(data.get("output") or "")

    def run(self, code: str, language: str, test_cases: Sequence[TestCase]) -> List[TestCaseResult]:
        results: List[TestCaseResult] = []
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                for i, tc in enumerate(test_cases):
                    out = self._execute(client, code, language, tc.input)
                    results.append(
                        TestCaseResult(
                            index=i,
                            input=tc.input,
                            expected_output=tc.expected_output,
                            actual_output=out,
                            passed=outputs_match(out, tc.expected_output),
                            is_hidden=tc.is_hidden,
                            weight=tc.weight,
                        )
                    )
        except httpx.TimeoutException as exc:
            raise CodeRunnerError(f"code runner timed out after {self.timeout}s") from exc
        except httpx.HTTPError as exc:
            raise CodeRunnerError(f"code runner request failed: {exc}") from exc
        except ValueError as exc:
            raise CodeRunnerError(f"code runner returned malformed JSON: {exc}") from exc
        return results


class StaticCodeRunner:
    """Offline runner: ``judge(code, test_case) -> actual output``.

    Used by tests and the simulation CLI where no sandbox is reachable.
    """

    def __init__(self, judge: Callable[[str, TestCase], str]):
        self.judge = judge

    def run(self, code: str, language: str, test_cases: Sequence[TestCase]) -> List[TestCaseResult]:
        out: List[TestCaseResult] = []
        for i, tc in enumerate(test_cases):
            actual = self.judge(code, tc)
            out.append(
                TestCaseResult(
                    index=i,
                    input=tc.input,
                    expected_output=tc.expected_output,
                    actual_output=actual,
                    passed=outputs_match(actual, tc.expected_output),
                    is_hidden=tc.is_hidden,
                    weight=tc.weight,
                )
            )
        return out
