"""Notifier."""


def test_keeps_last_message(notifier):
    assert notifier.last is None
    notifier.success("done")
    notifier.error("failed")
    assert notifier.last.message == "failed"
    assert notifier.last.level == "error"


def test_listeners_receive_messages(notifier):
    received = []
    notifier.add_listener(received.append)

    notifier.notify("hello")
    notifier.remove_listener(received.append)
    notifier.notify("ignored")

    assert [n.message for n in received] == ["hello"]


def test_failing_listener_does_not_block_others(notifier):
    received = []

    def broken(notification):
        raise RuntimeError("listener down")

    notifier.add_listener(broken)
    notifier.add_listener(received.append)

    notification = notifier.error("boom")

    assert received == [notification]
    assert notification.to_dict()["level"] == "error"
