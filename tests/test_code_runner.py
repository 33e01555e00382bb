from __future__ import annotations

import json

import httpx
import pytest

from intake_core.code_runner import HttpCodeRunner, normalize_output, weighted_pass_ratio
from intake_core.errors import CodeRunnerError
from intake_core.intake_steps import TestCase


CASES = [
    TestCase(input="[3, 1, 2]", expected_output="[1,2,3]"),
    TestCase(input="[]", expected_output="[]", is_hidden=True, weight=2.0),
]


def _runner(handler) -> HttpCodeRunner:
    return HttpCodeRunner(
        url="https://runner.test/execute",
        client_id="cid",
        client_secret="secret",
        timeout=1.0,
        transport=httpx.MockTransport(handler),
    )


def test_posts_one_request_per_case():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append(body)
        out = {"[3, 1, 2]": "[1,2,3]\n", "[]": "[ ]"}[body["stdin"]]
        return httpx.Response(200, json={"output": out, "statusCode": 200})

    results = _runner(handler).run("code", "javascript", CASES)
    assert [b["stdin"] for b in seen] == ["[3, 1, 2]", "[]"]
    assert seen[0]["language"] == "nodejs"
    assert seen[0]["clientId"] == "cid"
    assert [r.passed for r in results] == [True, False]
    assert weighted_pass_ratio(results) == pytest.approx(1 / 3)


def test_http_error_becomes_runner_error():
    def handler(request):
        return httpx.Response(502, text="bad gateway")

    with pytest.raises(CodeRunnerError):
        _runner(handler).run("code", "javascript", CASES)


def test_timeout_becomes_runner_error():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(CodeRunnerError, match="timed out"):
        _runner(handler).run("code", "javascript", CASES)


def test_execution_status_error():
    def handler(request):
        return httpx.Response(200, json={"output": "SyntaxError", "statusCode": 400})

    with pytest.raises(CodeRunnerError, match="status 400"):
        _runner(handler).run("code", "javascript", CASES)


def test_unsupported_language():
    with pytest.raises(CodeRunnerError, match="unsupported"):
        _runner(lambda r: httpx.Response(200, json={})).run("code", "cobol", CASES)


def test_normalize_output():
    assert normalize_output("a  \r\nb\t\n\n") == "a\nb"


def test_non_object_reply_becomes_runner_error():
    def handler(request):
        return httpx.Response(200, json=["oops"])

    with pytest.raises(CodeRunnerError, match="expected an object"):
        _runner(handler).run("code", "javascript", CASES)


def test_null_output_on_failure_status():
    def handler(request):
        return httpx.Response(200, json={"statusCode": 500, "output": None})

    with pytest.raises(CodeRunnerError, match="status 500"):
        _runner(handler).run("code", "javascript", CASES)
