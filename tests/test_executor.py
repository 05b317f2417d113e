import unittest

from botocore.exceptions import EndpointConnectionError, ReadTimeoutError

from fakes import RecordingTransport, listing_xml
from s3_bucket.errors import (
    DeletionFailedError,
    DownloadFailedError,
    ListingFailedError,
    RequestTimeoutError,
    TooManyRedirectsError,
    UploadFailedError,
)
from s3_bucket.executor import RequestExecutor, object_key
from s3_bucket.models import Credentials
from s3_bucket.settings import ClientSettings
from s3_bucket.transport import HttpResponse

CREDENTIALS = Credentials(access_key="AKIDEXAMPLE", secret="secret", bucket="media")


def build_executor(responses, **settings):
    transport = RecordingTransport(responses)
    executor = RequestExecutor(CREDENTIALS, transport, settings=ClientSettings(**settings))
    return executor, transport


class UrlTests(unittest.TestCase):
    def test_object_key_strips_single_leading_separator(self):
        self.assertEqual("dir/file.txt", object_key("/dir/file.txt"))
        self.assertEqual("dir/file.txt", object_key("dir/file.txt"))

    def test_builds_object_and_listing_urls(self):
        executor, _ = build_executor([])

        self.assertEqual(
            "https://media.s3.amazonaws.com/dir/my%20file.txt",
            executor.object_url("/dir/my file.txt"),
        )
        self.assertEqual(
            "https://media.s3.amazonaws.com/?prefix=dir%2F&delimiter=%2F&marker=dir%2Fa.txt",
            executor.listing_url("/dir/", delimiter="/", marker="dir/a.txt"),
        )
        self.assertEqual("https://media.s3.amazonaws.com/?prefix=", executor.listing_url("/"))


class RequestExecutorTests(unittest.IsolatedAsyncioTestCase):
    async def test_get_returns_body_and_signs_request(self):
        executor, transport = build_executor([HttpResponse(200, {"Content-Type": "text/plain"}, b"hello")])

        data = await executor.get("/dir/file.txt")

        self.assertEqual(b"hello", data.body)
        self.assertEqual("dir/file.txt", data.key)
        self.assertEqual("text/plain", data.content_type)
        request = transport.requests[0]
        self.assertEqual("GET", request["method"])
        self.assertTrue(request["headers"]["Authorization"].startswith("AWS4-HMAC-SHA256 Credential=AKIDEXAMPLE/"))
        self.assertEqual(60.0, request["timeout"])

    async def test_follows_temporary_redirect_with_same_method_and_body(self):
        executor, transport = build_executor(
            [
                HttpResponse(307, {"Location": "https://media.s3-eu-west-1.amazonaws.com/dir/file.txt"}),
                HttpResponse(200),
            ]
        )

        await executor.put("/dir/file.txt", b"payload", "text/plain")

        self.assertEqual(2, len(transport.requests))
        first, second = transport.requests
        self.assertEqual("https://media.s3.amazonaws.com/dir/file.txt", first["url"])
        self.assertEqual("https://media.s3-eu-west-1.amazonaws.com/dir/file.txt", second["url"])
        self.assertEqual(["PUT", "PUT"], [first["method"], second["method"]])
        self.assertEqual(b"payload", second["body"])
        self.assertIn("Authorization", second["headers"])
        self.assertEqual(600.0, second["timeout"])

    async def test_put_sets_content_type_and_public_acl(self):
        executor, transport = build_executor([HttpResponse(200)])

        await executor.put(
            "/a.txt",
            b"x",
            "text/plain",
            private=False,
            headers={"content-type": "ignored", "x-amz-meta-owner": "me"},
        )

        headers = transport.requests[0]["headers"]
        self.assertEqual("text/plain", headers["Content-Type"])
        self.assertEqual("public-read", headers["x-amz-acl"])
        self.assertEqual("me", headers["x-amz-meta-owner"])

    async def test_gives_up_after_max_redirects(self):
        loop = HttpResponse(307, {"Location": "/a.txt"})
        executor, transport = build_executor([loop] * 3, max_redirects=2)

        with self.assertRaises(TooManyRedirectsError) as ctx:
            await executor.get("/a.txt")

        self.assertEqual(3, len(transport.requests))
        self.assertEqual(307, ctx.exception.status_code)

    async def test_redirect_without_location_fails_with_operation_error(self):
        executor, transport = build_executor([HttpResponse(307), HttpResponse(307)])

        with self.assertRaises(DeletionFailedError) as deletion:
            await executor.delete("/a.txt")
        with self.assertRaises(UploadFailedError) as upload:
            await executor.put("/a.txt", b"x", "text/plain")

        self.assertEqual(2, len(transport.requests))
        self.assertEqual(307, deletion.exception.status_code)
        self.assertNotIsInstance(upload.exception, TooManyRedirectsError)

    async def test_maps_failure_statuses_to_operation_errors(self):
        cases = [
            ("get", DownloadFailedError, 404),
            ("head", DownloadFailedError, 403),
            ("delete", DeletionFailedError, 200),
            ("list", ListingFailedError, 500),
        ]
        for operation, error_cls, status in cases:
            with self.subTest(operation=operation):
                executor, _ = build_executor([HttpResponse(status)])

                with self.assertRaises(error_cls) as ctx:
                    await getattr(executor, operation)("/a.txt")

                self.assertEqual(status, ctx.exception.status_code)
                self.assertIn(f"status: {status}", str(ctx.exception))

    async def test_delete_succeeds_on_no_content(self):
        executor, transport = build_executor([HttpResponse(204)])

        self.assertIsNone(await executor.delete("/a.txt"))
        self.assertEqual("DELETE", transport.requests[0]["method"])

    async def test_transport_failure_has_no_status_code(self):
        error = EndpointConnectionError(endpoint_url="https://media.s3.amazonaws.com")
        executor, _ = build_executor([error])

        with self.assertRaises(UploadFailedError) as ctx:
            await executor.put("/a.txt", b"x", "text/plain")

        self.assertIsNone(ctx.exception.status_code)
        self.assertIs(error, ctx.exception.__cause__)

    async def test_timeout_is_reported_separately(self):
        executor, _ = build_executor([ReadTimeoutError(endpoint_url="https://media.s3.amazonaws.com")])

        with self.assertRaises(RequestTimeoutError) as ctx:
            await executor.head("/a.txt")

        self.assertEqual("head", ctx.exception.operation)
        self.assertEqual(60.0, ctx.exception.timeout)

    async def test_head_builds_object_details(self):
        headers = {
            "Content-Length": "12",
            "Content-Type": "image/png",
            "ETag": '"abc"',
            "Last-Modified": "Wed, 01 May 2024 10:00:00 GMT",
            "x-amz-meta-origin": "camera",
        }
        executor, _ = build_executor([HttpResponse(200, headers)])

        details = await executor.head("/img/a.png")

        self.assertEqual("media", details.bucket)
        self.assertEqual("img/a.png", details.key)
        self.assertEqual(12, details.size)
        self.assertEqual("image/png", details.content_type)
        self.assertEqual(2024, details.last_modified.year)
        self.assertEqual({"origin": "camera"}, details.metadata)

    async def test_list_parses_page_with_marker(self):
        body = listing_xml(["dir/a.txt", "dir/sub/b.txt"], truncated=True)
        executor, transport = build_executor([HttpResponse(200, {}, body)])

        page = await executor.list("/dir/", marker="dir/0.txt")

        self.assertEqual(["dir/a.txt", "dir/sub/b.txt"], page.keys)
        self.assertEqual(["a.txt", "b.txt"], [entry.basename for entry in page.entries])
        self.assertTrue(page.truncated)
        self.assertEqual("dir/sub/b.txt", page.continuation_key)
        self.assertIn("marker=dir%2F0.txt", transport.requests[0]["url"])


if __name__ == "__main__":
    unittest.main()
