"""Play discovery and loading."""

from __future__ import annotations

from pathlib import Path

from play_chain.models.loaded_play_file import LoadedPlayFile
from play_chain.models.play_spec import PlayOutputType


class PlayRegistry:
    """
    Plays found under ``play_roots``, keyed by file stem. Earlier roots shadow
    later ones, so a user directory can override a bundled play.
    """

    def __init__(self, play_roots: list[Path]):
        self.play_roots = play_roots
        self._cache: dict[str, LoadedPlayFile] = {}
        self._index: dict[str, Path] | None = None

    def _build_index(self) -> dict[str, Path]:
        index: dict[str, Path] = {}
        for root in self.play_roots:
            if not root.exists():
                continue
            for path in sorted(root.rglob("*.md")):
                index.setdefault(path.stem, path)
        return index

    def _get_index(self) -> dict[str, Path]:
        if self._index is None:
            self._index = self._build_index()
        return self._index

    def path_of(self, play_id: str) -> Path:
        path = self._get_index().get(play_id)
        if path is None:
            raise FileNotFoundError(f"Play not found: {play_id} (searched: {self.play_roots})")
        return path

    def get(self, play_id: str) -> LoadedPlayFile:
        if play_id not in self._cache:
            self._cache[play_id] = LoadedPlayFile(self.path_of(play_id))
        return self._cache[play_id]

    def list_plays(self, output_type: PlayOutputType | None = None) -> list[str]:
        play_ids = sorted(self._get_index())
        if output_type is None:
            return play_ids
        return [play_id for play_id in play_ids if self.get(play_id).spec.output_type == output_type]

    def variable_plays(self) -> dict[str, str]:
        """
        Maps each smart variable name to the play that produces it. A play
        without ``variable_name`` produces a variable named after its id.
        """
        producers: dict[str, str] = {}
        for play_id in self.list_plays(PlayOutputType.VARIABLE):
            name = self.get(play_id).spec.variable_name or play_id
            if name in producers:
                raise ValueError(f"Variable {name!r} is produced by both {producers[name]!r} and {play_id!r}.")
            producers[name] = play_id
        return producers
