import base64
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from db.blob import ExternalBlob
from db.media import MediaStore


class ExternalBlobTestCase(unittest.IsolatedAsyncioTestCase):
    def test_needs_exactly_one_source(self):
        with self.assertRaises(ValueError):
            ExternalBlob()
        with self.assertRaises(ValueError):
            ExternalBlob(data=b"x", url="https://example.com/x")

    async def test_bytes_and_data_url(self):
        blob = ExternalBlob.from_bytes(b"chair")
        self.assertFalse(blob.is_stored)
        self.assertEqual(await blob.get_bytes(), b"chair")

        url = blob.get_direct_url()
        self.assertEqual(url, "data:application/octet-stream;base64," + base64.b64encode(b"chair").decode())
        self.assertEqual(await ExternalBlob.from_url(url).get_bytes(), b"chair")

    async def test_file_url(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "table.jpg"
            path.write_bytes(b"table")
            blob = ExternalBlob.from_url(path.resolve().as_uri())
            self.assertTrue(blob.is_stored)
            self.assertEqual(await blob.get_bytes(), b"table")

    async def test_http_url_uses_requests(self):
        response = mock.Mock(content=b"remote")
        with mock.patch("db.blob.requests.get", return_value=response) as get:
            data = await ExternalBlob.from_url("https://cdn.example.com/a.jpg").get_bytes()
        self.assertEqual(data, b"remote")
        get.assert_called_once_with("https://cdn.example.com/a.jpg", timeout=10)
        response.raise_for_status.assert_called_once()

    def test_progress_is_clamped_and_copied(self):
        seen = []
        plain = ExternalBlob.from_bytes(b"x")
        tracked = plain.with_upload_progress(seen.append)

        plain.report_progress(50)
        tracked.report_progress(-3)
        tracked.report_progress(140)
        self.assertEqual(seen, [0, 100])
        self.assertEqual(plain, tracked)


class MediaStoreTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.store = MediaStore(os.path.join(self.temp_dir.name, "media"), chunk_size=4)

    def tearDown(self):
        self.temp_dir.cleanup()

    async def test_put_writes_chunks_and_reports_progress(self):
        seen = []
        blob = ExternalBlob.from_bytes(b"0123456789").with_upload_progress(seen.append)

        stored = await self.store.put(blob)
        self.assertTrue(stored.is_stored)
        self.assertEqual(await stored.get_bytes(), b"0123456789")
        self.assertEqual(seen, [0, 40, 80, 100])
        self.assertEqual(len(os.listdir(self.store.media_dir)), 1)

    async def test_stored_blob_passes_through(self):
        seen = []
        blob = ExternalBlob.from_url("https://cdn.example.com/a.jpg").with_upload_progress(seen.append)
        self.assertIs(await self.store.put(blob), blob)
        self.assertEqual(seen, [100])

    async def test_empty_blob(self):
        seen = []
        await self.store.put(ExternalBlob.from_bytes(b"").with_upload_progress(seen.append))
        self.assertEqual(seen, [0, 100])


if __name__ == "__main__":
    unittest.main()
