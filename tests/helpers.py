"""Test doubles shared by unit and integration tests."""

import json


def translation_response(text: str):
    """A (status, body) pair as returned by TranslationGateway._request."""
    return 200, json.dumps({"data": {"translations": [{"translatedText": text}]}})


class FakeFetcher:
    """Fetcher returning canned ParsedFeeds (or raising canned errors) per URL."""

    def __init__(self, responses: dict):
        self.responses = responses
        self.calls = []

    async def fetch(self, url):
        self.calls.append(url)
        response = self.responses[url]
        if isinstance(response, BaseException):
            raise response
        return response
