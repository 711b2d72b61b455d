import logging

from app.models.stream import MessageKind
from app.services.stream.codec import decode_frame
from app.services.stream.dispatcher import Dispatcher


def _success(title):
    return decode_frame('{"kind":"Success","payload":"[{\\"title\\":\\"%s\\"}]"}' % title)


def test_last_success_wins_for_any_count():
    for n in (1, 2, 5, 20):
        dispatcher = Dispatcher()
        for i in range(n):
            dispatcher.dispatch(_success(f"T{i}"))
        assert dispatcher.results == ({"title": f"T{n - 1}"},)


def test_success_with_empty_list_replaces_previous_results():
    dispatcher = Dispatcher()
    dispatcher.dispatch(_success("A"))
    dispatcher.dispatch(decode_frame('{"kind":"Success","payload":"[]"}'))
    assert dispatcher.results == ()


def test_other_kinds_do_not_touch_results(caplog):
    dispatcher = Dispatcher()
    dispatcher.dispatch(_success("A"))
    with caplog.at_level(logging.INFO):
        for kind in ("Progress", "Warning", "Error", "Raw"):
            dispatcher.dispatch(decode_frame('{"kind":"%s","payload":"msg-%s"}' % (kind, kind)))
    assert dispatcher.results == ({"title": "A"},)
    levels = {r.getMessage(): r.levelno for r in caplog.records}
    assert levels["Received Error: msg-Error"] == logging.ERROR
    assert levels["Received Warning: msg-Warning"] == logging.WARNING
    assert levels["Received Progress: msg-Progress"] == logging.INFO


def test_subscribers_and_unsubscribe():
    dispatcher = Dispatcher()
    seen = []
    unsubscribe = dispatcher.subscribe(MessageKind.WARNING, lambda env: seen.append(env.payload))
    dispatcher.dispatch(decode_frame('{"kind":"Warning","payload":"slow"}'))
    dispatcher.dispatch(decode_frame('{"kind":"Progress","payload":"10%"}'))
    unsubscribe()
    dispatcher.dispatch(decode_frame('{"kind":"Warning","payload":"slower"}'))
    assert seen == ["slow"]


def test_failing_subscriber_is_logged_not_raised(caplog):
    dispatcher = Dispatcher()

    def broken(env):
        raise ValueError("boom")

    dispatcher.subscribe(MessageKind.SUCCESS, broken)
    with caplog.at_level(logging.ERROR):
        dispatcher.dispatch(_success("A"))
    assert dispatcher.results == ({"title": "A"},)
    assert "Subscriber for Success failed" in caplog.text


def test_clear_drops_results():
    dispatcher = Dispatcher()
    dispatcher.dispatch(_success("A"))
    dispatcher.clear()
    assert dispatcher.results == ()
