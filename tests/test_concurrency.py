"""
Concurrent mutations through the facade must be equivalent to some serial
ordering.
"""

import threading

import pytest

from openrfc import AgentType, RFCDomainModel, ReviewStatus
from openrfc.services import KeyedLock

THREADS = 16


def run_all(target, args_list):
    barrier = threading.Barrier(len(args_list))
    errors = []

    def worker(*args):
        barrier.wait()
        try:
            target(*args)
        except Exception as e:  # collected and asserted on below
            errors.append(e)

    threads = [threading.Thread(target=worker, args=args) for args in args_list]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return errors


@pytest.fixture
def model():
    return RFCDomainModel()


class TestConcurrentUpdates:
    def test_versions_never_collide(self, model):
        rfc = model.create_rfc("T", "start", "a1", "u1")

        errors = run_all(
            model.update_rfc_content, [(rfc.id, f"content {i}") for i in range(THREADS)]
        )

        assert errors == []
        assert model.get_rfc(rfc.id).version == 1 + THREADS
        contents = {model.get_rfc_version(rfc.id, k).content for k in range(2, THREADS + 2)}
        assert contents == {f"content {i}" for i in range(THREADS)}

    def test_replace_all_sees_previous_result(self, model):
        rfc = model.create_rfc("T", "x", "a1", "u1")

        errors = run_all(
            model.replace_string, [(rfc.id, "x", "xx", True) for _ in range(8)]
        )

        assert errors == []
        current = model.get_rfc(rfc.id)
        assert current.version == 9
        assert current.content == "x" * 256


class TestConcurrentReviews:
    def test_completion_stamped_exactly_once(self, model):
        model.create_agent(AgentType.LEAD, "Lead", agent_id="lead1")
        reviewer_ids = [f"r{i}" for i in range(THREADS)]
        for rid in reviewer_ids:
            model.create_agent(AgentType.BACKEND, rid, agent_id=rid)
        rfc = model.create_rfc("T", "body", "lead1", "u1")
        review = model.request_review(rfc.id, "lead1", reviewer_ids)

        errors = run_all(model.submit_review, [(review.id, rid) for rid in reviewer_ids])

        assert errors == []
        assert model.is_review_complete(review.id)
        assert set(model.get_review_status(review.id).values()) == {ReviewStatus.COMPLETED}

    def test_only_one_round_opens(self, model):
        model.create_agent(AgentType.LEAD, "Lead", agent_id="lead1")
        model.create_agent(AgentType.BACKEND, "Backend", agent_id="r1")
        rfc = model.create_rfc("T", "body", "lead1", "u1")

        errors = run_all(model.request_review, [(rfc.id, "lead1", ["r1"])] * 8)

        assert len(errors) == 7
        assert len(model.get_all_reviews_for_rfc(rfc.id)) == 1


class TestKeyedLock:
    def test_same_key_same_lock(self):
        locks = KeyedLock()
        with locks.hold(("rfc", "a")) as first:
            with locks.hold(("rfc", "a")) as again:
                assert again is first
            with locks.hold(("rfc", "b")) as other:
                assert other is not first
                assert len(locks) == 2

    def test_reentrant(self):
        locks = KeyedLock()
        with locks.hold("k"):
            with locks.hold("k"):
                pass

    def test_released_keys_are_dropped(self):
        locks = KeyedLock()
        for i in range(100):
            with locks.hold(("comment", str(i))):
                pass
        assert len(locks) == 0

    def test_waiting_thread_keeps_lock_alive(self):
        locks = KeyedLock()
        entered = threading.Event()
        order = []

        def waiter():
            entered.set()
            with locks.hold("k"):
                order.append("waiter")

        with locks.hold("k"):
            thread = threading.Thread(target=waiter)
            thread.start()
            entered.wait()
            order.append("holder")
        thread.join()

        assert order == ["holder", "waiter"]
        assert len(locks) == 0
