"""
Unit tests for the integer codec.

Codec contract:
- one alphabet character per value, one '~' per full alphabet length
- sequences of sequences are joined with a single space
- anything outside alphabet / '~' / separator fails to decode
"""

import unittest

from colles.codec import (
    ALPHABET,
    MORE,
    CodecError,
    DecodeError,
    EncodeError,
    decode_integers,
    decode_sequences,
    encode_integers,
    encode_sequences,
)


class TestEncode(unittest.TestCase):
    def test_zero_is_first_alphabet_char(self) -> None:
        self.assertEqual(encode_integers([0]), ALPHABET[0])

    def test_continuation_characters(self) -> None:
        base = len(ALPHABET)
        self.assertEqual(encode_integers([base - 1]), "}")
        self.assertEqual(encode_integers([base]), MORE + "0")
        self.assertEqual(encode_integers([2 * base + 5]), MORE * 2 + "5")

    def test_empty_sequence(self) -> None:
        self.assertEqual(encode_integers([]), "")

    def test_deterministic(self) -> None:
        xs = [3, 0, 250, 17]
        self.assertEqual(encode_integers(xs), encode_integers(list(xs)))

    def test_negative_fails(self) -> None:
        with self.assertRaises(EncodeError):
            encode_integers([1, -1])

    def test_non_integer_fails(self) -> None:
        with self.assertRaises(EncodeError):
            encode_integers([1.5])
        with self.assertRaises(EncodeError):
            encode_integers(["1"])
        with self.assertRaises(EncodeError):
            encode_integers([True])

    def test_errors_are_value_errors(self) -> None:
        self.assertTrue(issubclass(EncodeError, CodecError))
        self.assertTrue(issubclass(DecodeError, ValueError))


class TestDecode(unittest.TestCase):
    def test_roundtrip(self) -> None:
        xs = [0, 1, 9, 10, 89, 90, 91, 179, 180, 1000, 12345]
        self.assertEqual(decode_integers(encode_integers(xs)), xs)

    def test_alphabet_is_json_safe(self) -> None:
        self.assertNotIn('"', ALPHABET)
        self.assertNotIn("\\", ALPHABET)
        self.assertNotIn(" ", ALPHABET)
        self.assertNotIn(MORE, ALPHABET)
        self.assertEqual(len(set(ALPHABET)), len(ALPHABET))
        self.assertEqual(len(ALPHABET), 91)

    def test_unknown_character_fails(self) -> None:
        with self.assertRaises(DecodeError):
            decode_integers('ab"c')

    def test_separator_inside_single_sequence_fails(self) -> None:
        with self.assertRaises(DecodeError):
            decode_integers("1 2")

    def test_dangling_continuation_fails(self) -> None:
        with self.assertRaises(DecodeError):
            decode_integers("12~")


class TestSequences(unittest.TestCase):
    def test_roundtrip_with_empty_inner(self) -> None:
        xss = [[1, 2], [], [300, 0]]
        text = encode_sequences(xss)
        self.assertEqual(text, "12  ~~~r0")
        self.assertEqual(decode_sequences(text), xss)

    def test_empty_string_is_one_empty_sequence(self) -> None:
        self.assertEqual(encode_sequences([]), "")
        self.assertEqual(decode_sequences(""), [[]])


if __name__ == "__main__":
    unittest.main()
