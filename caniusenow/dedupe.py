"""Duplicate detection between records coming from different sources.

Two records are considered the same feature when their normalized ids
match, their normalized names match, or one normalized name contains the
other and they are of similar length. It is a heuristic: near-identical
names of distinct features can collide and renamed features can slip
through.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import re

from .constants import DUPLICATE_LENGTH_RATIO, SOURCE_PREFIXES

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")
_SOURCE_PREFIX_RE = re.compile(r"^(?:" + "|".join(re.escape(p) for p in SOURCE_PREFIXES) + ")")
_CATEGORY_WORD_RE = re.compile(r"^(?:css|html5?|svg|javascript|js)\s+")
_CODE_MARKUP_RE = re.compile(r"</?code>|`")


def normalize_feature_id(feature_id: str) -> str:
    """Lowercase, drop a source prefix and every non-alphanumeric character."""
    stripped = _SOURCE_PREFIX_RE.sub("", feature_id.lower())
    return _NON_ALNUM_RE.sub("", stripped)


def _id_key(feature_id: str) -> tuple[str, str | None]:
    """Return (normalized id, normalized last segment for dotted MDN paths)."""
    stripped = _SOURCE_PREFIX_RE.sub("", feature_id.lower())
    normalized = _NON_ALNUM_RE.sub("", stripped)
    if "." not in stripped:
        return normalized, None
    return normalized, _NON_ALNUM_RE.sub("", stripped.rsplit(".", maxsplit=1)[-1])


def normalize_feature_name(name: str) -> str:
    """Lowercase, drop a leading category word, code markup and punctuation."""
    lowered = name.lower().strip()
    lowered = _CODE_MARKUP_RE.sub("", lowered)
    lowered = _CATEGORY_WORD_RE.sub("", lowered)
    return _NON_ALNUM_RE.sub("", lowered)


def _ids_match(id1: str, id2: str) -> bool:
    norm1, leaf1 = _id_key(id1)
    norm2, leaf2 = _id_key(id2)
    if leaf1 is not None and leaf2 is None:
        norm1 = leaf1
    elif leaf2 is not None and leaf1 is None:
        norm2 = leaf2
    return bool(norm1) and norm1 == norm2


def _names_match(name1: str, name2: str) -> bool:
    if not name1 or not name2:
        return False
    if name1 == name2:
        return True
    if name1 in name2 or name2 in name1:
        shorter, longer = sorted((len(name1), len(name2)))
        return shorter / longer > DUPLICATE_LENGTH_RATIO
    return False


def are_likely_duplicates(id1: str, name1: str, id2: str, name2: str) -> bool:
    """Decide whether two (id, name) records describe the same feature.

    When exactly one of the ids is a dotted MDN path, the path is compared by
    its last segment, so "grid" and "css.properties.display.grid" match.
    """
    if _ids_match(id1, id2):
        return True
    return _names_match(normalize_feature_name(name1), normalize_feature_name(name2))


@dataclass
class DuplicateIndex:
    """Registered (id, name) records searchable without a linear scan.

    ``find`` answers exactly as scanning every registered record in
    registration order with ``are_likely_duplicates`` and returning the
    first hit.
    """

    _ids: list[str] = field(default_factory=list)
    _plain_ids: dict[str, int] = field(default_factory=dict)
    _path_ids: dict[str, int] = field(default_factory=dict)
    _path_leaves: dict[str, int] = field(default_factory=dict)
    _names: dict[str, int] = field(default_factory=dict)
    _names_by_length: dict[int, list[tuple[int, str]]] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self._ids)

    def add(self, feature_id: str, name: str) -> None:
        position = len(self._ids)
        self._ids.append(feature_id)

        normalized, leaf = _id_key(feature_id)
        if normalized:
            if leaf is None:
                self._plain_ids.setdefault(normalized, position)
            else:
                self._path_ids.setdefault(normalized, position)
        if leaf:
            self._path_leaves.setdefault(leaf, position)

        normalized_name = normalize_feature_name(name)
        if normalized_name:
            self._names.setdefault(normalized_name, position)
            self._names_by_length.setdefault(len(normalized_name), []).append(
                (position, normalized_name)
            )

    def _id_candidate(self, feature_id: str) -> int | None:
        normalized, leaf = _id_key(feature_id)
        if leaf is None:
            if not normalized:
                return None
            hits = [self._plain_ids.get(normalized), self._path_leaves.get(normalized)]
        else:
            hits = [self._path_ids.get(normalized) if normalized else None]
            if leaf:
                hits.append(self._plain_ids.get(leaf))
        found = [hit for hit in hits if hit is not None]
        return min(found) if found else None

    def _name_candidate(self, name: str, best: int | None) -> int | None:
        normalized = normalize_feature_name(name)
        if not normalized:
            return best

        exact = self._names.get(normalized)
        if exact is not None and (best is None or exact < best):
            best = exact

        length = len(normalized)
        for other_length, entries in self._names_by_length.items():
            shorter, longer = sorted((length, other_length))
            if shorter / longer <= DUPLICATE_LENGTH_RATIO:
                continue
            for position, other in entries:
                if best is not None and position >= best:
                    break
                if other in normalized or normalized in other:
                    best = position
                    break
        return best

    def find(self, feature_id: str, name: str) -> str | None:
        """Return the id of the earliest registered duplicate, if any."""
        best = self._name_candidate(name, self._id_candidate(feature_id))
        return self._ids[best] if best is not None else None
