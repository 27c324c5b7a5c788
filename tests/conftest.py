"""Shared fixtures for the provider CLI tests."""

import json

import pytest
from botocore.exceptions import ClientError

from cf_cli.helpers.api_client import ApiResponse


class FakeClock:
    """Monotonic clock that only advances when ``sleep`` is called."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class ScriptedPrompter:
    """Prompter that replays canned answers and records every question."""

    def __init__(self, selects=None, texts=None, passwords=None, confirms=None):
        self.selects = list(selects or [])
        self.texts = list(texts or [])
        self.passwords = list(passwords or [])
        self.confirms = list(confirms or [])
        self.calls = []

    def select(self, message, options, default=None):
        self.calls.append(("select", message, list(options), default))
        return self.selects.pop(0)

    def text(self, message, default=None):
        self.calls.append(("text", message) if default is None else ("text", message, default))
        answer = self.texts.pop(0)
        if answer == "" and default is not None:
            return default
        return answer

    def password(self, message, help_text=""):
        self.calls.append(("password", message, help_text))
        return self.passwords.pop(0)

    def confirm(self, message, default=True):
        self.calls.append(("confirm", message, default))
        return self.confirms.pop(0)


def api_response(status_code, payload=None):
    """Build an ApiResponse with a JSON body."""
    body = "" if payload is None else json.dumps(payload)
    return ApiResponse(status_code=status_code, body=body)


def client_error(code, message="", operation="Operation"):
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


PROVIDER_PAYLOAD = {
    "publisher": "common-fate",
    "name": "aws",
    "version": "v0.4.0",
    "lambdaAssetS3Arn": "arn:aws:s3:::registry-bucket/common-fate/aws/v0.4.0/handler.zip",
    "cfnTemplateS3Arn": "arn:aws:s3:::registry-bucket/common-fate/aws/v0.4.0/cloudformation.json",
    "schema": {
        "config": {
            "api_url": {"usage": "The API URL"},
            "api_key": {"secret": True, "usage": "The API key"},
        },
        "targets": {"Account": {"type": "object"}},
    },
}


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def provider_payload():
    return json.loads(json.dumps(PROVIDER_PAYLOAD))
