"""Tests for the identifier generator."""

import threading
import time

from ledger.ids import generate_id, id_timestamp_ms


class TestGenerateId:

    def test_fixed_width(self):
        assert len(generate_id()) == 19

    def test_base36_alphabet(self):
        assert all(c in "0123456789abcdefghijklmnopqrstuvwxyz" for c in generate_id())

    def test_strictly_increasing(self):
        """A tight loop stays ordered even within one millisecond."""
        ids = [generate_id() for _ in range(5000)]
        assert ids == sorted(ids)
        assert len(set(ids)) == len(ids)

    def test_unique_across_threads(self):
        results: list[str] = []
        lock = threading.Lock()

        def worker():
            batch = [generate_id() for _ in range(500)]
            with lock:
                results.extend(batch)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(set(results)) == 4000

    def test_embedded_timestamp(self):
        before = time.time_ns() // 1_000_000
        identifier = generate_id()
        after = time.time_ns() // 1_000_000
        # Within one ms of real time unless the random part rolled over
        assert before <= id_timestamp_ms(identifier) <= after + 1
