import pytest

from prison_ai.chat import EMPTY_QUESTION_REPLY, ERROR_REPLY, GREETING, ChatSession
from tests.helpers import StubGenerator


def test_session_starts_with_greeting():
    session = ChatSession()

    assert [(m.role, m.text) for m in session.messages] == [("model", GREETING)]


def test_submit_appends_question_and_answer():
    session = ChatSession(facility="Test Prison")
    generator = StubGenerator("There are 12 records.")

    reply = session.submit("How many records?", generator)

    assert reply.text == "There are 12 records."
    assert [m.role for m in session.messages] == ["model", "user", "model"]
    assert 'The user\'s question is: "How many records?"' in generator.prompts[0]
    assert "Test Prison Management System" in generator.prompts[0]


def test_blank_question_is_not_sent():
    session = ChatSession()
    generator = StubGenerator("unused")

    assert session.submit("   ", generator).text == EMPTY_QUESTION_REPLY
    assert generator.prompts == []


def test_failure_then_retry():
    session = ChatSession()
    error = session.submit("Who was released?", StubGenerator(fail=True))

    assert error.role == "error"
    assert error.text == ERROR_REPLY
    assert error.original_user_message == "Who was released?"

    answer = session.retry(error, StubGenerator("Nobody."))
    assert answer.text == "Nobody."
    assert session.messages[-1] is answer
    assert all(m.role != "error" for m in session.messages)
    assert [m.role for m in session.messages] == ["model", "user", "model"]


def test_retry_requires_error_message():
    session = ChatSession()
    with pytest.raises(ValueError):
        session.retry(session.messages[0], StubGenerator("x"))
