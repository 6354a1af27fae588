import unittest

import macroguard
from macro_builders import body_tokens


def unprotected(text, params, **kwargs):
    occurrences = macroguard.scan_parameter_uses(body_tokens(text), frozenset(params), **kwargs)
    return [(occ.name, occ.index) for occ in occurrences]


class ParameterScanTests(unittest.TestCase):
    def test_unparenthesized_use(self) -> None:
        self.assertEqual(unprotected("a * 2", ["a"]), [("a", 0)])

    def test_parenthesized_use(self) -> None:
        self.assertEqual(unprotected("( a ) * 2", ["a"]), [])
        self.assertEqual(unprotected("( a )", ["a"]), [])

    def test_group_start_is_not_enough(self) -> None:
        self.assertEqual(unprotected("( a + 1 )", ["a"]), [("a", 1)])

    def test_stringize_and_paste_operands(self) -> None:
        self.assertEqual(unprotected("# a", ["a"]), [])
        self.assertEqual(unprotected("a ## b", ["a"]), [])
        self.assertEqual(unprotected("x ## a", ["a"]), [])
        self.assertEqual(unprotected("( x ## a + 1 )", ["a"]), [])

    def test_only_parameters_are_reported(self) -> None:
        self.assertEqual(unprotected("f ( x , y )", ["a"]), [])
        self.assertEqual(unprotected("a + b", ["b"]), [("b", 2)])

    def test_order_follows_tokens(self) -> None:
        self.assertEqual(
            unprotected("b + a * ( b ) - a", ["a", "b"]),
            [("b", 0), ("a", 2), ("a", 8)],
        )

    def test_single_token_body(self) -> None:
        self.assertEqual(unprotected("a", ["a"]), [("a", 0)])


class LegacyBoundsTests(unittest.TestCase):
    def test_enclosure_near_edges_is_not_exempt(self) -> None:
        self.assertEqual(unprotected("( a )", ["a"], legacy_bounds=True), [("a", 1)])
        self.assertEqual(unprotected("( ( a ) )", ["a"], legacy_bounds=True), [])
        self.assertEqual(unprotected("( ( a ) ) + 1", ["a"], legacy_bounds=True), [])
        self.assertEqual(unprotected("1 + ( a )", ["a"], legacy_bounds=True), [("a", 3)])

    def test_paste_operand_at_edges(self) -> None:
        self.assertEqual(unprotected("a ## b", ["a"], legacy_bounds=True), [("a", 0)])
        self.assertEqual(unprotected("# a", ["a"], legacy_bounds=True), [("a", 1)])
        self.assertEqual(unprotected("# a ;", ["a"], legacy_bounds=True), [])

    def test_single_token_body_is_not_scanned(self) -> None:
        self.assertEqual(unprotected("a", ["a"], legacy_bounds=True), [])


if __name__ == "__main__":
    unittest.main()
