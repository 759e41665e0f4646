"""Tests for the code-context scanner."""

from mdexpand.imports.scanner import SafeRange
from mdexpand.imports.scanner import find_safe_ranges
from mdexpand.imports.scanner import scan_document


class TestFindSafeRanges:
    def test_plain_text_is_one_range(self):
        content = "just some text"
        assert find_safe_ranges(content) == [SafeRange(0, len(content))]

    def test_empty_document(self):
        assert find_safe_ranges("") == []

    def test_fenced_block_is_excluded(self):
        content = "before\n```bash\n@./inside.md\n```\nafter"
        scan = scan_document(content)

        assert scan.is_safe(content.index("before"))
        assert not scan.is_safe(content.index("@./inside.md"))
        assert scan.is_safe(content.index("after"))

    def test_tilde_fence(self):
        content = "~~~\n@./inside.md\n~~~\nafter"
        scan = scan_document(content)

        assert not scan.is_safe(content.index("@"))
        assert scan.is_safe(content.index("after"))

    def test_longer_closing_fence_closes(self):
        content = "```\ncode\n`````\nafter"
        assert scan_document(content).is_safe(content.index("after"))

    def test_shorter_run_does_not_close_fence(self):
        content = "````\n```\n@./still-code.md\n````\nafter"
        scan = scan_document(content)

        assert not scan.is_safe(content.index("@"))
        assert scan.is_safe(content.index("after"))

    def test_unterminated_fence_makes_rest_unsafe(self):
        content = "text\n```\n@./a.md\nmore"
        scan = scan_document(content)

        assert scan.is_safe(0)
        assert not scan.is_safe(content.index("@"))
        assert not scan.is_safe(content.index("more"))

    def test_inline_code_is_excluded(self):
        content = "use `@./a.md` to import"
        scan = scan_document(content)

        assert not scan.is_safe(content.index("@"))
        assert scan.is_safe(content.index("to import"))

    def test_inline_code_ends_at_newline(self):
        content = "a `broken\n@./a.md"
        assert scan_document(content).is_safe(content.index("@"))


class TestUnsafeStarts:
    def test_records_fence_and_inline_openings(self):
        content = "x `y` z\n```\ncode\n```\n"
        scan = scan_document(content)

        assert content.index("`") in scan.unsafe_starts
        assert content.index("```") in scan.unsafe_starts

    def test_consecutive_fences_both_recorded(self):
        content = "```sh\na\n```\n```sh\nb\n```\n"
        scan = scan_document(content)

        first = 0
        second = content.index("```sh", 1)
        assert {first, second} <= scan.unsafe_starts

    def test_nested_fence_not_recorded(self):
        content = "````md\n```sh\nx\n```\n````\n"
        scan = scan_document(content)

        assert scan.unsafe_starts == frozenset({0})


class TestFencedBlocks:
    def test_closed_fence_spans_to_end_of_closing_line(self):
        content = "```sh\necho\n`````\nafter"
        (fence,) = scan_document(content).fences

        assert (fence.start, fence.end) == (0, content.index("\nafter"))

    def test_unterminated_fence_not_recorded(self):
        assert scan_document("```\nnever closed\n").fences == ()

    def test_fence_closed_at_end_of_document(self):
        content = "text\n~~~\ncode\n~~~"
        (fence,) = scan_document(content).fences

        assert (fence.start, fence.end) == (content.index("~~~"), len(content))
