import unittest

from vaultsync.controller.multipart import encode_multipart_binary, encode_multipart_text


class TestMultipart(unittest.TestCase):
    def test_text_body_layout(self) -> None:
        content_type, body = encode_multipart_text(
            {"name": "a.md"}, "héllo", "text/markdown", boundary="XYZ"
        )

        self.assertEqual(content_type, "multipart/related; boundary=XYZ")
        self.assertEqual(
            body,
            (
                "--XYZ\r\n"
                "Content-Type: application/json; charset=UTF-8\r\n\r\n"
                '{"name": "a.md"}\r\n'
                "--XYZ\r\n"
                "Content-Type: text/markdown\r\n\r\n"
                "héllo\r\n"
                "--XYZ--"
            ).encode("utf-8"),
        )

    def test_binary_content_is_not_reencoded(self) -> None:
        payload = bytes(range(256))
        _, body = encode_multipart_binary({"name": "b.bin"}, payload, "application/octet-stream", boundary="B")

        head, _, rest = body.partition(b"Content-Type: application/octet-stream\r\n\r\n")
        self.assertTrue(head.startswith(b"--B\r\n"))
        self.assertEqual(rest, payload + b"\r\n--B--")

    def test_fresh_boundary_per_body(self) -> None:
        first, _ = encode_multipart_text({}, "", "text/plain")
        second, _ = encode_multipart_text({}, "", "text/plain")
        self.assertNotEqual(first, second)


if __name__ == "__main__":
    unittest.main()
