import asyncio
import logging
from argparse import Namespace
from types import SimpleNamespace

from google.genai import errors as genai_errors
from pymongo.errors import ServerSelectionTimeoutError

import main
from core.errors import USER_FACING_MESSAGE


class FailingGenerator:
    def __init__(self, error):
        self.error = error

    async def complete(self, prompt, output_schema, system=None):
        raise self.error


class FailingStore:
    async def list_testimonials(self):
        raise ServerSelectionTimeoutError("cluster0.example.net:27017: timed out")


class FakeApp:
    def __init__(self, generator=None, store=None, recorder=None):
        self.generator = generator
        self.store = store
        self.recorder = recorder
        self.closed = False

    async def close(self):
        self.closed = True


def _run_command(app, **args):
    return asyncio.run(main.run(Namespace(**args), app))


class TestRunErrorHandling:
    def test_sdk_error_gets_generic_message(self, recorder, capsys, caplog):
        overloaded = genai_errors.ServerError(503, {"error": {
            "code": 503, "message": "overloaded", "status": "UNAVAILABLE",
        }})
        app = FakeApp(generator=FailingGenerator(overloaded), recorder=recorder)

        with caplog.at_level(logging.ERROR, logger="vmfit"):
            code = _run_command(app, command="caption", func=main.cmd_caption, topic="glúteos")

        assert code == 1
        err = capsys.readouterr().err
        assert err.strip() == USER_FACING_MESSAGE
        assert "overloaded" not in err
        assert any(r.exc_info and "overloaded" in r.getMessage() for r in caplog.records)
        assert app.closed

    def test_store_driver_error_gets_generic_message(self, capsys):
        app = FakeApp(store=FailingStore())
        code = _run_command(app, command="testimonials", func=main.cmd_testimonials)
        assert code == 1
        assert capsys.readouterr().err.strip() == USER_FACING_MESSAGE
        assert app.closed

    def test_known_error_gets_generic_message(self, capsys):
        code = _run_command(FakeApp(store=None), command="testimonials", func=main.cmd_testimonials)
        assert code == 1
        assert "MONGODB_URI" not in capsys.readouterr().err

    def test_success_returns_zero(self, capsys):
        store = SimpleNamespace()

        async def list_testimonials():
            return [SimpleNamespace(name="Ana", rating=5, story="Bajé 8 kg.")]

        store.list_testimonials = list_testimonials
        app = FakeApp(store=store)
        assert _run_command(app, command="testimonials", func=main.cmd_testimonials) == 0
        assert "Ana (5/5): Bajé 8 kg." in capsys.readouterr().out
        assert app.closed
