import unittest

from fakes import FakeFirestoreClient

from drivemirror.errors import InvalidArgumentError
from drivemirror.store import MAX_BATCH_SIZE, BatchWriter


class TestBatchWriter(unittest.TestCase):
    def setUp(self) -> None:
        self.client = FakeFirestoreClient()
        self.coll = self.client.collection("things")

    def test_commits_full_batches_then_partial(self) -> None:
        with BatchWriter(self.client) as writer:
            for i in range(1201):
                writer.set(self.coll.document(f"t{i}"), {"n": i})

        self.assertEqual(self.client.batch_sizes, [500, 500, 201])
        self.assertEqual(writer.committed_batches, 3)
        self.assertEqual(writer.committed_operations, 1201)
        self.assertEqual(len(self.client.documents("things")), 1201)

    def test_exact_multiple_has_no_empty_batch(self) -> None:
        with BatchWriter(self.client, max_batch_size=10) as writer:
            for i in range(20):
                writer.delete(self.coll.document(f"t{i}"))
        self.assertEqual(self.client.batch_sizes, [10, 10])
        self.assertEqual(writer.pending, 0)

    def test_flush_without_operations_is_noop(self) -> None:
        BatchWriter(self.client).flush()
        self.assertEqual(self.client.batch_sizes, [])

    def test_pending_batch_discarded_on_error(self) -> None:
        with self.assertRaises(RuntimeError):
            with BatchWriter(self.client, max_batch_size=3) as writer:
                for i in range(4):
                    writer.set(self.coll.document(f"t{i}"), {"n": i})
                raise RuntimeError("stop")

        self.assertEqual(self.client.batch_sizes, [3])
        self.assertNotIn("t3", self.client.documents("things"))

    def test_batch_size_bounds(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            BatchWriter(self.client, max_batch_size=0)
        with self.assertRaises(InvalidArgumentError):
            BatchWriter(self.client, max_batch_size=MAX_BATCH_SIZE + 1)


if __name__ == "__main__":
    unittest.main()
