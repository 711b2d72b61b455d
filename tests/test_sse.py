from app.services.stream.sse import ServerSentEvent, SSEDecoder


def _feed(decoder, text):
    events = []
    for line in text.split("\n"):
        ev = decoder.decode(line)
        if ev is not None:
            events.append(ev)
    return events


def test_single_and_multiline_data():
    events = _feed(SSEDecoder(), "data: first\n\ndata: a\ndata: b\n\n")
    assert [e.data for e in events] == ["first", "a\nb"]
    assert all(e.event == "message" for e in events)


def test_comments_and_blank_lines_without_data_are_ignored():
    events = _feed(SSEDecoder(), ": keep-alive\n\n\n:another\n\n")
    assert events == []


def test_event_id_and_retry_fields():
    decoder = SSEDecoder()
    events = _feed(decoder, "event: progress\nid: 7\nretry: 3000\ndata:no-space\n\n")
    assert events == [ServerSentEvent(data="no-space", event="progress", id="7", retry=3000)]
    assert decoder.last_event_id == "7"

    # event type resets after dispatch, the id does not
    events = _feed(decoder, "retry: soon\ndata: next\n\n")
    assert events[0].event == "message"
    assert events[0].id == "7"
    assert events[0].retry == 3000


def test_value_keeps_colons_and_only_one_leading_space():
    events = _feed(SSEDecoder(), 'data:  {"kind": "Raw"}\n\n')
    assert events[0].data == ' {"kind": "Raw"}'


def test_incomplete_event_is_not_dispatched():
    decoder = SSEDecoder()
    assert decoder.decode("data: partial") is None
