"""
Dotted path helpers shared by the resolver and the alias registry.

Paths look like ``nodeId.body.items[0].name``. Bracketed segments stay
attached to their field (``items[0]`` is one segment) and dots inside
brackets (``headers["x.trace"]``) do not split.
"""

import re
from typing import Any, List, Sequence, Tuple, Union

_INDEX_PATTERN = re.compile(r'\[([^\]]*)\]')

Accessor = Union[str, int]


def split_path(path: str) -> List[str]:
    """Split a dotted path into segments, keeping bracket content intact"""
    if not path:
        return []

    segments = []
    current = []
    depth = 0
    for char in path:
        if char == '[':
            depth += 1
        elif char == ']' and depth:
            depth -= 1
        if char == '.' and depth == 0:
            segments.append(''.join(current))
            current = []
            continue
        current.append(char)
    segments.append(''.join(current))
    return segments


def join_path(segments: Sequence[str]) -> str:
    """Inverse of split_path()"""
    return '.'.join(segments)


def parse_segment(segment: str) -> List[Accessor]:
    """
    Turn one segment into accessors.

    Examples:
        "items[0]"     -> ["items", 0]
        "matrix[0][1]" -> ["matrix", 0, 1]
        '["x.y"]'      -> ["x.y"]
    """
    bracket = segment.find('[')
    if bracket == -1:
        return [segment]

    accessors: List[Accessor] = []
    name = segment[:bracket]
    if name:
        accessors.append(name)

    for raw in _INDEX_PATTERN.findall(segment[bracket:]):
        raw = raw.strip()
        if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in ('"', "'"):
            accessors.append(raw[1:-1])
            continue
        try:
            accessors.append(int(raw))
        except ValueError:
            accessors.append(raw)

    return accessors


def get_path(root: Any, segments: Sequence[str]) -> Tuple[bool, Any]:
    """
    Walk segments into root.

    Returns:
        (found, value) - found is False as soon as a step is missing
    """
    current = root
    for segment in segments:
        for accessor in parse_segment(segment):
            if isinstance(current, dict):
                if accessor in current:
                    current = current[accessor]
                elif str(accessor) in current:
                    current = current[str(accessor)]
                else:
                    return False, None
            elif isinstance(current, (list, tuple)):
                try:
                    index = int(accessor)
                except (TypeError, ValueError):
                    return False, None
                if -len(current) <= index < len(current):
                    current = current[index]
                else:
                    return False, None
            else:
                return False, None
    return True, current
