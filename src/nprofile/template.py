"""Parameter substitution for profile command templates.

Templates use flat ``{name}`` placeholders. A literal brace is written twice
(``{{`` or ``}}``). Anything else involving braces is malformed.

Public API:
    render: Substitute bindings into a template
    placeholders: List the parameter names a template refers to
"""

from collections.abc import Iterator, Mapping
from enum import Enum, auto

from nprofile.exceptions import MalformedTemplateError, UnknownParameterError

OPEN = "{"
CLOSE = "}"


class _State(Enum):
    LITERAL = auto()
    OPEN_PENDING = auto()
    IN_NAME = auto()
    CLOSE_PENDING = auto()


def _scan(template: str) -> Iterator[tuple[bool, str, int]]:
    """Tokenize a template in a single left-to-right pass.

    Yields:
        (is_placeholder, text, offset) tuples. Literal runs have escapes
        already collapsed and offset -1; placeholder tokens carry the
        parameter name and the offset of their opening brace.

    Raises:
        MalformedTemplateError: On unmatched, empty or nested braces
    """
    state = _State.LITERAL
    literal: list[str] = []
    name: list[str] = []
    start = 0

    for index, char in enumerate(template):
        if state is _State.LITERAL:
            if char == OPEN:
                state = _State.OPEN_PENDING
                start = index
            elif char == CLOSE:
                state = _State.CLOSE_PENDING
                start = index
            else:
                literal.append(char)

        elif state is _State.OPEN_PENDING:
            if char == OPEN:
                literal.append(OPEN)
                state = _State.LITERAL
            elif char == CLOSE:
                raise MalformedTemplateError("Empty placeholder '{}'", template, start)
            else:
                if literal:
                    yield False, "".join(literal), -1
                    literal = []
                name = [char]
                state = _State.IN_NAME

        elif state is _State.IN_NAME:
            if char == CLOSE:
                yield True, "".join(name), start
                name = []
                state = _State.LITERAL
            elif char == OPEN:
                raise MalformedTemplateError("Nested '{' inside placeholder", template, index)
            else:
                name.append(char)

        else:  # CLOSE_PENDING
            if char == CLOSE:
                literal.append(CLOSE)
                state = _State.LITERAL
            else:
                raise MalformedTemplateError(
                    "Unmatched '}' (write '}}' for a literal brace)", template, start
                )

    if state is _State.OPEN_PENDING or state is _State.IN_NAME:
        raise MalformedTemplateError(
            "Unclosed '{' (write '{{' for a literal brace)", template, start
        )
    if state is _State.CLOSE_PENDING:
        raise MalformedTemplateError(
            "Unmatched '}' (write '}}' for a literal brace)", template, start
        )
    if literal:
        yield False, "".join(literal), -1


def render(template: str, bindings: Mapping[str, str]) -> str:
    """Render a command template.

    Args:
        template: Raw command template
        bindings: Parameter name -> value

    Returns:
        The rendered command string

    Raises:
        UnknownParameterError: If a placeholder has no binding
        MalformedTemplateError: If braces are unbalanced or nested

    Example:
        >>> render("nmcli radio {device} on", {"device": "wifi"})
        'nmcli radio wifi on'
        >>> render("awk '{{ print $3 }}'", {})
        "awk '{ print $3 }'"
    """
    tokens = list(_scan(template))
    parts: list[str] = []
    for is_placeholder, text, _offset in tokens:
        if not is_placeholder:
            parts.append(text)
            continue
        if text not in bindings:
            raise UnknownParameterError(text)
        parts.append(str(bindings[text]))
    return "".join(parts)


def placeholders(template: str) -> tuple[str, ...]:
    """Return parameter names referenced by a template, in first-seen order."""
    seen: dict[str, None] = {}
    for is_placeholder, text, _offset in _scan(template):
        if is_placeholder:
            seen.setdefault(text, None)
    return tuple(seen)


__all__ = ["placeholders", "render"]
