"""Tests for preview-image lookup by component path and by name.

Probes are recorded so cache hits can be shown to touch nothing.
"""

from __future__ import annotations

import asyncio
import tempfile
import unittest
from collections.abc import Sequence
from pathlib import Path
from unittest import mock

from componentpreview.locator import PreviewLocator, expected_preview_names, image_watch_pattern
from componentpreview.watch import CHANGED, CREATED, DELETED, ChangeEvent


class RecordingExists:
    def __init__(self, existing: set[Path] | None = None) -> None:
        self.existing = existing if existing is not None else set()
        self.calls: list[Path] = []

    def __call__(self, path: Path) -> bool:
        self.calls.append(Path(path))
        return Path(path) in self.existing


class RecordingSearch:
    def __init__(self, results: dict[str, list[Path]] | None = None) -> None:
        self.results = results if results is not None else {}
        self.calls: list[tuple[str, int]] = []

    async def __call__(self, roots: Sequence[Path], pattern: str, exclude_dirs: Sequence[str], limit: int) -> list[Path]:
        self.calls.append((pattern, limit))
        return list(self.results.get(pattern, []))


class ConventionTests(unittest.TestCase):
    def test_expected_names_and_watch_pattern(self) -> None:
        self.assertEqual(
            expected_preview_names("Hero"),
            ("Hero.preview.{png|jpg|jpeg}", "__previews__/Hero.{png|jpg|jpeg}"),
        )
        self.assertEqual(image_watch_pattern(), "**/*.{png,jpg,jpeg}")
        self.assertEqual(image_watch_pattern((".webp",)), "**/*.{webp}")


class FindByPathTests(unittest.TestCase):
    def test_adjacent_preview_is_found(self) -> None:
        exists = RecordingExists({Path("/ws/src/blocks/Hero.preview.png")})
        locator = PreviewLocator(exists=exists)
        self.assertEqual(locator.find_by_path(Path("/ws/src/blocks/Hero.tsx")), Path("/ws/src/blocks/Hero.preview.png"))

    def test_adjacent_convention_beats_previews_folder_for_every_extension(self) -> None:
        exists = RecordingExists(
            {
                Path("/ws/src/Hero.preview.jpeg"),
                Path("/ws/src/__previews__/Hero.png"),
            }
        )
        locator = PreviewLocator(exists=exists)
        self.assertEqual(locator.find_by_path(Path("/ws/src/Hero.tsx")), Path("/ws/src/Hero.preview.jpeg"))

    def test_extension_priority_within_a_convention(self) -> None:
        exists = RecordingExists({Path("/ws/src/__previews__/Hero.jpg"), Path("/ws/src/__previews__/Hero.png")})
        locator = PreviewLocator(exists=exists)
        self.assertEqual(locator.find_by_path(Path("/ws/src/Hero.tsx")), Path("/ws/src/__previews__/Hero.png"))

    def test_repeated_lookup_performs_no_further_probes(self) -> None:
        exists = RecordingExists({Path("/ws/src/Hero.preview.png")})
        locator = PreviewLocator(exists=exists)
        first = locator.find_by_path(Path("/ws/src/Hero.tsx"))
        probes = len(exists.calls)
        second = locator.find_by_path(Path("/ws/src/Hero.tsx"))
        self.assertEqual(first, second)
        self.assertEqual(len(exists.calls), probes)

    def test_negative_result_is_cached(self) -> None:
        exists = RecordingExists()
        locator = PreviewLocator(exists=exists)
        self.assertIsNone(locator.find_by_path(Path("/ws/src/Ghost.tsx")))
        self.assertEqual(len(exists.calls), 6)
        self.assertFalse(locator.has_preview(Path("/ws/src/Ghost.tsx")))
        self.assertEqual(len(exists.calls), 6)

    def test_oldest_entry_is_evicted_after_fifty_lookups(self) -> None:
        exists = RecordingExists()
        locator = PreviewLocator(exists=exists)
        for idx in range(51):
            locator.find_by_path(Path(f"/ws/src/Component{idx}.tsx"))
        probes = len(exists.calls)

        locator.find_by_path(Path("/ws/src/Component50.tsx"))
        self.assertEqual(len(exists.calls), probes)

        locator.find_by_path(Path("/ws/src/Component0.tsx"))
        self.assertEqual(len(exists.calls), probes + 6)

    def test_name_in_directory_is_not_cached(self) -> None:
        exists = RecordingExists({Path("/ws/src/blocks/Hero8.preview.png")})
        locator = PreviewLocator(exists=exists)
        directory = Path("/ws/src/blocks")
        self.assertEqual(locator.find_by_name_in_dir("Hero8", directory), Path("/ws/src/blocks/Hero8.preview.png"))
        probes = len(exists.calls)
        locator.find_by_name_in_dir("Hero8", directory)
        self.assertEqual(len(exists.calls), probes * 2)


class InvalidationTests(unittest.TestCase):
    def test_image_events_clear_cache_and_notify_subscribers(self) -> None:
        exists = RecordingExists()
        locator = PreviewLocator(exists=exists)
        notified: list[str] = []
        locator.subscribe(lambda: notified.append("changed"))

        self.assertIsNone(locator.find_by_path(Path("/ws/src/Hero.tsx")))
        exists.existing.add(Path("/ws/src/Hero.preview.png"))
        self.assertIsNone(locator.find_by_path(Path("/ws/src/Hero.tsx")))

        locator.handle_change(ChangeEvent(CREATED, Path("/ws/src/Hero.preview.png")))

        self.assertEqual(notified, ["changed"])
        self.assertEqual(locator.find_by_path(Path("/ws/src/Hero.tsx")), Path("/ws/src/Hero.preview.png"))

    def test_every_change_kind_invalidates(self) -> None:
        locator = PreviewLocator(exists=RecordingExists())
        notified: list[str] = []
        locator.subscribe(lambda: notified.append("changed"))
        for kind in (CREATED, DELETED, CHANGED):
            locator.handle_change(ChangeEvent(kind, Path("/ws/a.JPG")))
        self.assertEqual(len(notified), 3)

    def test_non_image_events_are_ignored(self) -> None:
        locator = PreviewLocator(exists=RecordingExists())
        notified: list[str] = []
        locator.subscribe(lambda: notified.append("changed"))
        locator.handle_change(ChangeEvent(CREATED, Path("/ws/src/Hero.tsx")))
        self.assertEqual(notified, [])

    def test_clear_cache_forces_fresh_lookup_without_notifying(self) -> None:
        exists = RecordingExists()
        locator = PreviewLocator(exists=exists)
        notified: list[str] = []
        locator.subscribe(lambda: notified.append("changed"))
        locator.find_by_path(Path("/ws/src/Hero.tsx"))
        probes = len(exists.calls)

        locator.clear_cache()
        locator.find_by_path(Path("/ws/src/Hero.tsx"))

        self.assertEqual(len(exists.calls), probes * 2)
        self.assertEqual(notified, [])

    def test_unsubscribe_stops_notifications(self) -> None:
        locator = PreviewLocator(exists=RecordingExists())
        notified: list[str] = []
        unsubscribe = locator.subscribe(lambda: notified.append("changed"))
        unsubscribe()
        locator.invalidate()
        self.assertEqual(notified, [])


class FindByNameTests(unittest.IsolatedAsyncioTestCase):
    async def test_patterns_follow_convention_then_extension_order(self) -> None:
        match = Path("/ws/src/__previews__/Hero.png")
        search = RecordingSearch({"**/__previews__/Hero.png": [match]})
        locator = PreviewLocator([Path("/ws")], exists=RecordingExists(), search=search)

        self.assertEqual(await locator.find_by_name("Hero"), match)
        self.assertEqual(
            [pattern for pattern, _limit in search.calls],
            [
                "**/Hero.preview.png",
                "**/Hero.preview.jpg",
                "**/Hero.preview.jpeg",
                "**/__previews__/Hero.png",
            ],
        )
        self.assertTrue(all(limit == 1 for _pattern, limit in search.calls))

    async def test_name_results_are_cached_including_misses(self) -> None:
        search = RecordingSearch()
        locator = PreviewLocator([Path("/ws")], exists=RecordingExists(), search=search)

        self.assertIsNone(await locator.find_by_name("Ghost"))
        calls = len(search.calls)
        self.assertIsNone(await locator.find_by_name("Ghost"))
        self.assertEqual(len(search.calls), calls)

    async def test_invalidation_during_search_skips_caching(self) -> None:
        locator: PreviewLocator | None = None
        calls: list[str] = []

        async def search(roots: Sequence[Path], pattern: str, exclude_dirs: Sequence[str], limit: int) -> list[Path]:
            calls.append(pattern)
            assert locator is not None
            locator.invalidate()
            await asyncio.sleep(0)
            return []

        locator = PreviewLocator([Path("/ws")], exists=RecordingExists(), search=search)
        await locator.find_by_name("Hero")
        first_round = len(calls)
        await locator.find_by_name("Hero")
        self.assertEqual(len(calls), first_round * 2)

    async def test_braced_and_bracketed_names_match_only_themselves(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            for relative in ("x/Carda.preview.png", "x/Card{a,b}.preview.png", "pages/i.preview.png", "pages/[id].preview.png"):
                target = root / relative
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(b"")
            locator = PreviewLocator([root])

            with mock.patch("componentpreview.probe.shutil.which", return_value=None):
                braced = await locator.find_by_name("Card{a,b}")
                bracketed = await locator.find_by_name("[id]")

            self.assertEqual(braced, root / "x" / "Card{a,b}.preview.png")
            self.assertEqual(bracketed, root / "pages" / "[id].preview.png")

    async def test_search_patterns_escape_glob_characters(self) -> None:
        search = RecordingSearch()
        locator = PreviewLocator([Path("/ws")], exists=RecordingExists(), search=search)

        await locator.find_by_name("[slug]")

        self.assertEqual(search.calls[0][0], "**/\\[slug\\].preview.png")


if __name__ == "__main__":
    unittest.main()
