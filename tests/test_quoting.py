import unittest

from drvinf.inf.quoting import (
    has_unterminated_quote,
    index_of_unquoted,
    quote,
    split_ignoring_quoted,
    unquote,
)


class TestIndexOfUnquoted(unittest.TestCase):
    def test_skips_quoted_span(self):
        self.assertEqual(index_of_unquoted('"a;b";c', ";"), 5)

    def test_absent(self):
        self.assertIsNone(index_of_unquoted('"a;b"', ";"))
        self.assertIsNone(index_of_unquoted("", ";"))

    def test_start_offset(self):
        self.assertEqual(index_of_unquoted("a,b,c", ",", 2), 3)
        self.assertIsNone(index_of_unquoted("a,b", ",", 10))


class TestSplitIgnoringQuoted(unittest.TestCase):
    def test_quoted_comma(self):
        self.assertEqual(split_ignoring_quoted('a,"b,c",d', ","), ["a", '"b,c"', "d"])

    def test_trailing_empty_field(self):
        self.assertEqual(split_ignoring_quoted("a,", ","), ["a", ""])

    def test_no_separator(self):
        self.assertEqual(split_ignoring_quoted("abc", ","), ["abc"])


class TestQuote(unittest.TestCase):
    def test_unquote_pair_only(self):
        self.assertEqual(unquote('"abc"'), "abc")
        self.assertEqual(unquote('"abc'), '"abc')
        self.assertEqual(unquote('"'), '"')
        self.assertEqual(unquote("abc"), "abc")
        self.assertEqual(unquote('""'), "")

    def test_quote(self):
        self.assertEqual(quote("a b"), '"a b"')

    def test_unterminated(self):
        self.assertTrue(has_unterminated_quote('"abc'))
        self.assertFalse(has_unterminated_quote('"a","b"'))


if __name__ == "__main__":
    unittest.main()
