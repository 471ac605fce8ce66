import fnmatch
import re
from typing import Union


def path_is_match(path: Union[str, list[str]], request_path: str) -> bool:
    """Check if a request path matches a protected path pattern.

    Patterns are exact paths, glob patterns (``*``, ``?``, ``**``) matched
    case-sensitively, or regular expressions prefixed with ``regex:``. A list
    matches if any of its patterns does.
    """
    if isinstance(path, str):
        if path.startswith("regex:"):
            return re.match(path[len("regex:") :], request_path) is not None
        return fnmatch.fnmatchcase(request_path, path)
    if isinstance(path, list):
        return any(path_is_match(p, request_path) for p in path)
    return False
