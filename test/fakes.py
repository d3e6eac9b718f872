import json
from types import SimpleNamespace

import httpx
from openai import APIConnectionError, BadRequestError

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def bad_request(message="Invalid image URL"):
    response = httpx.Response(400, request=_REQUEST)
    return BadRequestError(message, response=response, body=None)


def connection_error():
    return APIConnectionError(request=_REQUEST)


class FakeOpenAI:
    """
    Stands in for openai.OpenAI. `replies` are consumed in order by both
    chat.completions.create and responses.create; each is a JSON string, a dict
    (dumped to JSON), an exception (raised) or a callable taking the call kwargs.
    When replies run out the service answers "{}".
    """

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.chat_calls = []
        self.responses_calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._chat_create))
        self.responses = SimpleNamespace(create=self._responses_create)

    def _reply(self, kwargs):
        reply = self.replies.pop(0) if self.replies else "{}"
        if callable(reply) and not isinstance(reply, Exception):
            reply = reply(kwargs)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, dict):
            reply = json.dumps(reply)
        return reply

    def _chat_create(self, **kwargs):
        self.chat_calls.append(kwargs)
        content = self._reply(kwargs)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])

    def _responses_create(self, **kwargs):
        self.responses_calls.append(kwargs)
        return SimpleNamespace(output_text=self._reply(kwargs))

    @property
    def call_count(self):
        return len(self.chat_calls) + len(self.responses_calls)
