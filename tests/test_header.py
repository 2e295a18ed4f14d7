import json
import tempfile
import unittest
from pathlib import Path

from retarget.core.header import Header, HeaderError, StrippedHeader, load_headers, parse_headers


class HeaderParsingTests(unittest.TestCase):
    def test_full_header_from_dict(self) -> None:
        header = Header.from_dict({"height": 4, "timestamp": 720000, "target": "0x2100ffff"})
        self.assertEqual(header, Header(height=4, timestamp=720000, target=0x2100FFFF))
        self.assertEqual(header.strip(), StrippedHeader(target=0x2100FFFF, timestamp=720000))

    def test_to_dict_round_trip(self) -> None:
        header = Header(height=1, timestamp=180000, target=0x2000FFFF)
        self.assertEqual(header.to_dict()["target"], "0x2000ffff")
        self.assertEqual(Header.from_dict(header.to_dict()), header)
        stripped = header.strip()
        self.assertEqual(StrippedHeader.from_dict(stripped.to_dict()), stripped)

    def test_missing_and_malformed_fields(self) -> None:
        for data in (
            {"height": 1, "timestamp": 0},
            {"height": 1, "timestamp": "soon", "target": 1},
            {"height": True, "timestamp": 0, "target": 1},
            {"height": -1, "timestamp": 0, "target": 1},
            {"height": 1, "timestamp": 0.5, "target": 1},
        ):
            with self.subTest(data=data):
                with self.assertRaises(HeaderError):
                    Header.from_dict(data)

    def test_parse_mixed_entries(self) -> None:
        entries = parse_headers(
            {
                "headers": [
                    {"height": 0, "timestamp": 0, "target": 0x2100FFFF},
                    {"timestamp": 180000, "target": "0x2100ffff"},
                ]
            }
        )
        self.assertIsInstance(entries[0], Header)
        self.assertIsInstance(entries[1], StrippedHeader)

    def test_parse_rejects_non_lists(self) -> None:
        with self.assertRaises(HeaderError):
            parse_headers({"blocks": []})
        with self.assertRaises(HeaderError):
            parse_headers([1, 2])


class LoadHeadersTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = Path(self.tmpdir.name) / "headers.json"

    def tearDown(self) -> None:
        self.tmpdir.cleanup()

    def test_load_from_file(self) -> None:
        headers = [Header(height=h, timestamp=h * 180000, target=0x2100FFFF) for h in range(3)]
        self.path.write_text(json.dumps([header.to_dict() for header in headers]), encoding="utf-8")
        self.assertEqual(load_headers(self.path), headers)

    def test_invalid_json(self) -> None:
        self.path.write_text("[", encoding="utf-8")
        with self.assertRaises(HeaderError):
            load_headers(self.path)

    def test_missing_file(self) -> None:
        with self.assertRaises(HeaderError):
            load_headers(self.path)
