import unittest

from retarget.core import difficulty


class CompactCodecTests(unittest.TestCase):
    def test_highest_target_round_trip(self) -> None:
        self.assertEqual(difficulty.HIGHEST_TARGET, 0xFFFF << 240)
        self.assertEqual(difficulty.target_to_compact(difficulty.HIGHEST_TARGET), difficulty.HIGHEST_TARGET_BITS)

    def test_bitcoin_genesis_bits(self) -> None:
        target = difficulty.compact_to_target(0x1D00FFFF)
        self.assertEqual(target, 0xFFFF << 208)
        self.assertEqual(difficulty.target_to_compact(target), 0x1D00FFFF)

    def test_small_exponent_shifts_right(self) -> None:
        self.assertEqual(difficulty.compact_to_target(0x01010000), 1)
        self.assertEqual(difficulty.target_to_compact(1), 0x01010000)

    def test_encoding_keeps_three_significant_bytes(self) -> None:
        target = (0x123456 << 40) | 0xFFFF
        bits = difficulty.target_to_compact(target)
        self.assertEqual(difficulty.compact_to_target(bits), 0x123456 << 40)

    def test_zero_target(self) -> None:
        self.assertEqual(difficulty.target_to_compact(0), 0)
        self.assertEqual(difficulty.compact_to_target(0), 0)

    def test_negative_compact_rejected(self) -> None:
        with self.assertRaises(difficulty.DifficultyError):
            difficulty.compact_to_target(0x04923456)

    def test_negative_target_rejected(self) -> None:
        with self.assertRaises(difficulty.DifficultyError):
            difficulty.target_to_compact(-1)


class DifficultyTests(unittest.TestCase):
    def test_easiest_target_is_difficulty_one(self) -> None:
        self.assertEqual(difficulty.target_to_difficulty(difficulty.HIGHEST_TARGET_BITS), 1)

    def test_difficulty_scales_inversely(self) -> None:
        self.assertEqual(difficulty.target_to_difficulty(0x2000FFFF), 256)

    def test_zero_target_has_no_difficulty(self) -> None:
        with self.assertRaises(difficulty.DifficultyError):
            difficulty.target_to_difficulty(0)
