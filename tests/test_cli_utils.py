import unittest
from datetime import datetime, timezone

from s3_bucket.cli_utils import (
    DEFAULT_CONTENT_TYPE,
    format_details,
    format_entry,
    format_size,
    guess_content_type,
    to_remote_path,
)
from s3_bucket.models import ObjectDetails, ObjectEntry


class CliUtilsTests(unittest.TestCase):
    def test_format_size_prefers_largest_unit(self):
        self.assertEqual("512 B", format_size(512))
        self.assertEqual("2.0 KB", format_size(2 * 1024))
        self.assertEqual("1.0 GB", format_size(1024 * 1024 * 1024))
        self.assertEqual("-", format_size(None))

    def test_format_entry_long_form_includes_size_and_date(self):
        entry = ObjectEntry(key="dir/a.txt", size=2048, last_modified=datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc))

        self.assertEqual("dir/a.txt", format_entry(entry))
        line = format_entry(entry, long=True)
        self.assertIn("2024-05-01 10:00:00 UTC", line)
        self.assertIn("2.0 KB", line)
        self.assertTrue(line.endswith("dir/a.txt"))

    def test_format_details_lists_metadata(self):
        details = ObjectDetails(bucket="media", key="a.txt", size=3, metadata={"owner": "me"})

        lines = format_details(details)

        self.assertIn("key: a.txt", lines)
        self.assertIn("meta owner: me", lines)

    def test_paths_and_content_types(self):
        self.assertEqual("/dir/a.txt", to_remote_path("dir/a.txt"))
        self.assertEqual("/dir/", to_remote_path(" /dir/ "))
        self.assertEqual("text/plain", guess_content_type("notes.txt"))
        self.assertEqual(DEFAULT_CONTENT_TYPE, guess_content_type("blob.unknownext"))


if __name__ == "__main__":
    unittest.main()
