import threading

from titlechain.domain.identifiers import (
    DOCUMENT_ID_PATTERN,
    TRANSACTION_ID_PATTERN,
    DocumentIdGenerator,
    new_event_id,
    next_transaction_id,
)


class TestDocumentIds:
    def test_format_embeds_clock(self):
        generator = DocumentIdGenerator(lambda: 1_710_000_000_000)
        assert generator.next_id() == "DOC-1710000000000"

    def test_strictly_increasing_when_clock_stalls(self):
        generator = DocumentIdGenerator(lambda: 1_710_000_000_000)
        ids = [generator.next_id() for _ in range(3)]
        assert ids == ["DOC-1710000000000", "DOC-1710000000001", "DOC-1710000000002"]

    def test_never_goes_back_with_clock(self):
        readings = iter([1_710_000_000_500, 1_710_000_000_100])
        generator = DocumentIdGenerator(lambda: next(readings))
        first, second = generator.next_id(), generator.next_id()
        assert second > first

    def test_unique_across_threads(self):
        generator = DocumentIdGenerator(lambda: 1_710_000_000_000)
        results: list[str] = []
        lock = threading.Lock()

        def mint():
            for _ in range(200):
                value = generator.next_id()
                with lock:
                    results.append(value)

        threads = [threading.Thread(target=mint) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(set(results)) == 800
        assert all(DOCUMENT_ID_PATTERN.match(r) for r in results)


class TestTransactionIds:
    def test_first_of_year(self):
        assert next_transaction_id([], 2025) == "TX-2025-0001"

    def test_follows_highest_of_same_year(self):
        existing = ["TX-2024-8492", "TX-2024-9921", "TX-2025-0003"]
        assert next_transaction_id(existing, 2024) == "TX-2024-9922"
        assert next_transaction_id(existing, 2025) == "TX-2025-0004"

    def test_ignores_foreign_ids(self):
        assert next_transaction_id(["LOAN-7", "TX-24-1"], 2024) == "TX-2024-0001"

    def test_grows_past_four_digits(self):
        minted = next_transaction_id(["TX-2024-9999"], 2024)
        assert minted == "TX-2024-10000"
        assert TRANSACTION_ID_PATTERN.match(minted)


def test_event_ids_are_unique():
    ids = {new_event_id() for _ in range(500)}
    assert len(ids) == 500
    assert all(i.startswith("evt_") for i in ids)
