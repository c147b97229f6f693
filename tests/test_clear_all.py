from date_slicer.filters.clear_all import latch, observe


def test_edge_is_present_to_absent_only():
    assert observe(True, False, False)
    assert not observe(False, False, False)
    assert not observe(True, True, False)
    assert not observe(False, True, False)


def test_no_edge_on_first_tick():
    assert not observe(True, False, True)


def test_latch_holds_until_a_predicate_reappears():
    pending = latch(False, True, False)
    assert pending
    assert latch(pending, False, False)
    assert not latch(pending, False, True)
    assert not latch(False, False, False)
