import tempfile
import unittest
from pathlib import Path
from unittest import mock

from click.testing import CliRunner

from fakes import FakeKeychain, InMemoryService
from s3_bucket.__main__ import cli
from s3_bucket.bucket import S3Bucket
from s3_bucket.profiles import ProfileStorage


class CommandLineTests(unittest.TestCase):
    def setUp(self):
        self.service = InMemoryService()
        self.service.objects["dir/a.txt"] = (b"hello", "text/plain")
        self.service.objects["dir/sub/b.txt"] = (b"world", "text/plain")
        self.options = []

        def create_bucket(options):
            self.options.append(options)
            return S3Bucket(key="a", secret="b", bucket="media", transport=self.service)

        patcher = mock.patch("s3_bucket.__main__.create_bucket", side_effect=create_bucket)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.runner = CliRunner()

    def test_ls_prints_keys_below_path(self):
        result = self.runner.invoke(cli, ["--bucket", "media", "ls", "dir/"])

        self.assertEqual(0, result.exit_code, result.output)
        self.assertEqual(["dir/a.txt", "dir/sub/b.txt"], result.output.splitlines())
        self.assertEqual("media", self.options[0]["bucket"])

    def test_ls_directories_prints_common_prefixes(self):
        result = self.runner.invoke(cli, ["ls", "-d", "/dir/"])

        self.assertEqual(0, result.exit_code, result.output)
        self.assertEqual(["dir/sub/"], result.output.splitlines())

    def test_put_then_get_through_files(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            source = Path(tmpdir) / "notes.txt"
            source.write_bytes(b"uploaded")
            target = Path(tmpdir) / "copy.txt"

            put = self.runner.invoke(cli, ["put", str(source), "/up/notes.txt"])
            get = self.runner.invoke(cli, ["get", "/up/notes.txt", "-o", str(target)])

            self.assertEqual(0, put.exit_code, put.output)
            self.assertEqual(0, get.exit_code, get.output)
            self.assertEqual(b"uploaded", target.read_bytes())
        self.assertEqual((b"uploaded", "text/plain"), self.service.objects["up/notes.txt"])

    def test_head_prints_details(self):
        result = self.runner.invoke(cli, ["head", "/dir/a.txt"])

        self.assertEqual(0, result.exit_code, result.output)
        self.assertIn("key: dir/a.txt", result.output.splitlines())
        self.assertIn("content type: text/plain", result.output.splitlines())

    def test_rm_directory_removes_everything_below(self):
        result = self.runner.invoke(cli, ["rm", "/dir/"])

        self.assertEqual(0, result.exit_code, result.output)
        self.assertEqual({}, self.service.objects)

    def test_failed_operation_exits_with_status_one(self):
        result = self.runner.invoke(cli, ["head", "/missing.txt"])

        self.assertEqual(1, result.exit_code)


class ProfileCommandTests(unittest.TestCase):
    def setUp(self):
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.storage = ProfileStorage(Path(tmpdir.name) / "profiles.json", keychain=FakeKeychain())
        patcher = mock.patch("s3_bucket.__main__.profile_storage", return_value=self.storage)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.runner = CliRunner()

    def test_add_list_and_remove_profiles(self):
        added = self.runner.invoke(
            cli,
            ["profile", "add", "work", "--bucket", "media", "--access-key", "a", "--secret-key", "s"],
        )
        listed = self.runner.invoke(cli, ["profile", "ls"])
        removed = self.runner.invoke(cli, ["profile", "rm", "work"])
        missing = self.runner.invoke(cli, ["profile", "rm", "work"])

        self.assertEqual(0, added.exit_code, added.output)
        self.assertEqual(["work\tmedia\tus-east-1"], listed.output.splitlines())
        self.assertEqual(0, removed.exit_code, removed.output)
        self.assertEqual(1, missing.exit_code)
        self.assertEqual([], self.storage.load())


if __name__ == "__main__":
    unittest.main()
