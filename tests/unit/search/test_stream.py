from clinisearch.search.stream import ResultStream


def test_subscribe_replays_latest(make_patient):
    stream = ResultStream()
    patient = make_patient("John Smith", "5551234567")
    stream.publish([patient])

    received = []
    stream.subscribe(received.append)

    assert received == [[patient]]


def test_publish_reaches_all_subscribers(make_patient):
    stream = ResultStream()
    first, second = [], []
    stream.subscribe(first.append)
    stream.subscribe(second.append)

    patient = make_patient("John Smith", "5551234567")
    stream.publish([patient])

    assert first[-1] == [patient]
    assert second[-1] == [patient]


def test_unsubscribe_stops_delivery():
    stream = ResultStream()
    received = []
    unsubscribe = stream.subscribe(received.append)
    unsubscribe()
    unsubscribe()

    stream.publish([])

    assert received == [[]]
    assert stream.subscriber_count == 0


def test_failing_subscriber_does_not_block_others(make_patient):
    stream = ResultStream()

    def broken(results):
        raise RuntimeError("render failed")

    received = []
    stream.subscribe(broken)
    stream.subscribe(received.append)

    stream.publish([make_patient("John Smith", "5551234567")])

    assert len(received[-1]) == 1


def test_latest_is_a_copy(make_patient):
    stream = ResultStream()
    stream.publish([make_patient("John Smith", "5551234567")])

    stream.latest.clear()

    assert len(stream.latest) == 1
