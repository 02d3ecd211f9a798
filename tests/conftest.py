import pytest

from fakes import DummyConsole, DummyLogger, FakeCommandRunner, FakePrompter


@pytest.fixture
def logger():
    return DummyLogger()


@pytest.fixture
def console():
    return DummyConsole()


@pytest.fixture
def make_runner():
    return FakeCommandRunner


@pytest.fixture
def make_prompter():
    return FakePrompter
