import pytest

from jajanin.stream.sse import decode_alert, iter_events


async def _lines(*lines: str):
    for line in lines:
        yield line


async def _collect(*lines: str):
    return [event async for event in iter_events(_lines(*lines))]


@pytest.mark.asyncio
async def test_events_are_split_on_blank_lines() -> None:
    events = await _collect(
        "event: connected",
        'data: {"message": "Connected to alert stream"}',
        "",
        ": heartbeat",
        "",
        "event: alert",
        'data: {"supporter_name": "Budi",',
        'data: "amount": 5000}',
        "",
    )

    assert [event.event for event in events] == ["connected", "alert"]
    assert events[1].data == '{"supporter_name": "Budi",\n"amount": 5000}'
    alert = decode_alert(events[1].data)
    assert alert is not None and alert.supporter_name == "Budi"


@pytest.mark.asyncio
async def test_unnamed_event_defaults_to_message_and_partial_event_is_dropped() -> None:
    events = await _collect("data: hello", "", "event: alert", "data: {}")
    assert len(events) == 1
    assert events[0].event == "message"


def test_decode_alert_fails_closed() -> None:
    assert decode_alert("not json") is None
    assert decode_alert('{"amount": 5000}') is None
    assert decode_alert('{"supporter_name": "Ani", "amount": -1}') is None
    assert decode_alert("[1, 2]") is None


def test_decode_alert_normalizes_optional_fields() -> None:
    alert = decode_alert(
        '{"supporter_name": "Ani", "amount": 20000, "message": null, '
        '"product_name": "", "quantity": null, "creator_name": "dimas"}'
    )
    assert alert is not None
    assert alert.message == ""
    assert alert.product_name is None
    assert alert.quantity == 1
