#!/usr/bin/env python3
"""
MacroGuard - Parenthesization checks for C function-like macros

High-level goals:
- Lex C files (via Clang) and collect every macro definition in the main file
- Decide whether each function-like macro body is wrapped as a single
  expression/statement, and whether every parameter use is individually
  parenthesized
- Emit warnings with fix-it notes as JSON (CI / IDEs) or clang-style text

This file is intentionally single-module, in the same spirit as the rest of
the tooling: split it into packages only when it outgrows that.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import AbstractSet, Any, Callable, Dict, List, Optional, Sequence, Tuple
import argparse
import json
import os
import re
import shlex
import sys
try:  # Optional dependency; tool still runs without PyYAML.
    import yaml  # type: ignore
except ImportError:  # pragma: no cover - environment without PyYAML
    yaml = None  # type: ignore
try:  # Optional libclang integration.
    from clang import cindex as clang_cindex  # type: ignore
except ImportError:  # pragma: no cover - environment without libclang
    clang_cindex = None  # type: ignore


TOOL_NAME = "MacroGuard"
TOOL_VERSION = "0.1.0"
CHECK_NAME = "macro-body-parentheses"

WARNING_MESSAGE = "macro '{name}' is not parenthesization-safe"
MACRO_BODY_NOTE = "macro body should be enclosed in parentheses"
PARAMETER_NOTE = "parameter '{name}' should be enclosed in parentheses"
LPAREN_TEXT = "("
RPAREN_TEXT = ")"


# ============================================================
# =============== SOURCE LOCATION & RANGES ===================
# ============================================================

@dataclass(frozen=True)
class SourceLocation:
    file: str
    line: int
    column: int

    @property
    def is_valid(self) -> bool:
        return bool(self.file) and self.line > 0 and self.column > 0

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceRange:
    file: str
    line_start: int
    col_start: int
    line_end: int
    col_end: int

    @classmethod
    def between(cls, start: SourceLocation, end: SourceLocation) -> "SourceRange":
        return cls(
            file=start.file,
            line_start=start.line,
            col_start=start.column,
            line_end=end.line,
            col_end=end.column,
        )

    @property
    def start(self) -> SourceLocation:
        return SourceLocation(file=self.file, line=self.line_start, column=self.col_start)

    @property
    def end(self) -> SourceLocation:
        return SourceLocation(file=self.file, line=self.line_end, column=self.col_end)

    @property
    def is_valid(self) -> bool:
        """
        A range is usable for fix-its only if both ends are locatable and the
        end lies strictly after the start (zero-length ranges are rejected).
        """
        if not (self.start.is_valid and self.end.is_valid):
            return False
        return (self.line_end, self.col_end) > (self.line_start, self.col_start)


# ============================================================
# ================== TOKENS & MACRO EVENTS ===================
# ============================================================

class TokenKind(Enum):
    LPAREN = "l_paren"
    RPAREN = "r_paren"
    LBRACE = "l_brace"
    RBRACE = "r_brace"
    HASH = "hash"
    HASHHASH = "hashhash"
    IDENTIFIER = "identifier"
    OTHER = "other"


# Digraph spellings lex to the same kinds as their punctuators.
_PUNCTUATOR_KINDS: Dict[str, TokenKind] = {
    "(": TokenKind.LPAREN,
    ")": TokenKind.RPAREN,
    "{": TokenKind.LBRACE,
    "<%": TokenKind.LBRACE,
    "}": TokenKind.RBRACE,
    "%>": TokenKind.RBRACE,
    "#": TokenKind.HASH,
    "%:": TokenKind.HASH,
    "##": TokenKind.HASHHASH,
    "%:%:": TokenKind.HASHHASH,
}


def token_kind_for(spelling: str, is_identifier: bool = False) -> TokenKind:
    """
    Classify a lexed token. The lexer decides what is an identifier (keywords
    are not); punctuators are recognized by spelling.
    """
    if is_identifier:
        return TokenKind.IDENTIFIER
    return _PUNCTUATOR_KINDS.get(spelling, TokenKind.OTHER)


@dataclass(frozen=True)
class MacroToken:
    kind: TokenKind
    spelling: str
    start: SourceLocation
    end: SourceLocation  # one past the last character of the token

    @property
    def source_range(self) -> SourceRange:
        return SourceRange.between(self.start, self.end)


@dataclass(frozen=True)
class MacroDefinition:
    """
    One macro definition event as delivered by the front end.
    `location` points at the macro name in the #define line.
    """
    name: str
    location: SourceLocation
    is_function_like: bool = False
    params: Tuple[str, ...] = ()
    body: Tuple[MacroToken, ...] = ()
    source_range: Optional[SourceRange] = None

    @property
    def parameter_set(self) -> AbstractSet[str]:
        return frozenset(self.params)


# ============================================================
# ================== COMPLIANCE ANALYSIS =====================
# ============================================================

@dataclass(frozen=True)
class ParameterOccurrence:
    token: MacroToken
    index: int

    @property
    def name(self) -> str:
        return self.token.spelling

    @property
    def source_range(self) -> SourceRange:
        return self.token.source_range


@dataclass(frozen=True)
class ComplianceResult:
    body_range: SourceRange
    is_body_compliant: bool
    unprotected_parameters: Tuple[ParameterOccurrence, ...] = ()

    @property
    def is_compliant(self) -> bool:
        return self.is_body_compliant and not self.unprotected_parameters


def is_eligible(macro: MacroDefinition) -> bool:
    """Only function-like macros with parameters and a body are analyzed."""
    return macro.is_function_like and len(macro.params) > 0 and len(macro.body) > 0


def is_enclosed_in_braces(body: Sequence[MacroToken]) -> bool:
    # Statement-like bodies; nothing between the ends is inspected.
    return body[0].kind is TokenKind.LBRACE and body[-1].kind is TokenKind.RBRACE


def scan_body_compliance(body: Sequence[MacroToken]) -> bool:
    """
    The body must open with '(' or '{' and the paren depth may only drop back
    to zero at the very last token. Braces do not count towards the depth.
    A body whose parentheses never close keeps its initial verdict.
    """
    if body[0].kind not in (TokenKind.LPAREN, TokenKind.LBRACE):
        return False

    depth = 0
    last_index = len(body) - 1
    for index, token in enumerate(body):
        if token.kind is TokenKind.LPAREN:
            depth += 1
        elif token.kind is TokenKind.RPAREN:
            depth -= 1
        if depth == 0 and index != last_index:
            return False
    return True


def _is_stringize_or_paste_operand(
    body: Sequence[MacroToken],
    index: int,
    *,
    legacy_bounds: bool,
) -> bool:
    count = len(body)
    if legacy_bounds:
        if not (index >= 1 and index + 2 <= count):
            return False
        return (
            body[index - 1].kind in (TokenKind.HASH, TokenKind.HASHHASH)
            or body[index + 1].kind is TokenKind.HASHHASH
        )

    after_operator = index >= 1 and body[index - 1].kind in (TokenKind.HASH, TokenKind.HASHHASH)
    before_paste = index + 1 < count and body[index + 1].kind is TokenKind.HASHHASH
    return after_operator or before_paste


def _is_directly_parenthesized(
    body: Sequence[MacroToken],
    index: int,
    *,
    legacy_bounds: bool,
) -> bool:
    count = len(body)
    if legacy_bounds:
        in_bounds = index > 1 and index + 2 < count
    else:
        in_bounds = index >= 1 and index + 1 < count
    if not in_bounds:
        return False
    return body[index - 1].kind is TokenKind.LPAREN and body[index + 1].kind is TokenKind.RPAREN


def scan_parameter_uses(
    body: Sequence[MacroToken],
    params: AbstractSet[str],
    *,
    legacy_bounds: bool = False,
) -> List[ParameterOccurrence]:
    """
    Collect parameter occurrences that are neither '#'/'##' operands nor
    wrapped in their own '(' ')' pair, in token order.
    """
    unprotected: List[ParameterOccurrence] = []
    if legacy_bounds and len(body) < 2:
        return unprotected

    for index, token in enumerate(body):
        if token.kind is not TokenKind.IDENTIFIER or token.spelling not in params:
            continue
        if _is_stringize_or_paste_operand(body, index, legacy_bounds=legacy_bounds):
            continue
        if _is_directly_parenthesized(body, index, legacy_bounds=legacy_bounds):
            continue
        unprotected.append(ParameterOccurrence(token=token, index=index))
    return unprotected


def analyze(
    body: Sequence[MacroToken],
    params: AbstractSet[str],
    *,
    legacy_bounds: bool = False,
) -> ComplianceResult:
    """
    Pure analysis of one macro body. The same input always produces an equal
    ComplianceResult.
    """
    tokens = tuple(body)
    if not tokens:
        raise ValueError("macro body must contain at least one token")
    parameter_set = frozenset(params)

    if is_enclosed_in_braces(tokens):
        body_compliant = True
    else:
        body_compliant = scan_body_compliance(tokens)

    unprotected = scan_parameter_uses(tokens, parameter_set, legacy_bounds=legacy_bounds)
    return ComplianceResult(
        body_range=SourceRange.between(tokens[0].start, tokens[-1].end),
        is_body_compliant=body_compliant,
        unprotected_parameters=tuple(unprotected),
    )


# ============================================================
# ======================= DIAGNOSTICS ========================
# ============================================================

@dataclass(frozen=True)
class FixIt:
    location: SourceLocation
    text: str


@dataclass
class Diagnostic:
    """
    A warning (or note) ready for rendering. Notes hang off their warning in
    emission order.
    """
    check: str
    severity: str
    message: str
    location: SourceLocation
    source_range: Optional[SourceRange] = None
    fixits: List[FixIt] = field(default_factory=list)
    notes: List["Diagnostic"] = field(default_factory=list)


def _wrap_fixits(source_range: SourceRange) -> List[FixIt]:
    return [
        FixIt(location=source_range.start, text=LPAREN_TEXT),
        FixIt(location=source_range.end, text=RPAREN_TEXT),
    ]


def build_diagnostic(
    macro: MacroDefinition,
    result: ComplianceResult,
    *,
    parameter_notes: bool = True,
) -> Optional[Diagnostic]:
    """
    Turn a ComplianceResult into one warning at the macro definition, with a
    body note (when the body range is usable) and one note per unprotected
    parameter occurrence.
    """
    if result.is_compliant:
        return None

    warning = Diagnostic(
        check=CHECK_NAME,
        severity="warning",
        message=WARNING_MESSAGE.format(name=macro.name),
        location=macro.location,
        source_range=macro.source_range,
    )

    if not result.is_body_compliant and result.body_range.is_valid:
        warning.notes.append(
            Diagnostic(
                check=CHECK_NAME,
                severity="note",
                message=MACRO_BODY_NOTE,
                location=result.body_range.start,
                source_range=result.body_range,
                fixits=_wrap_fixits(result.body_range),
            )
        )

    if parameter_notes:
        for occurrence in result.unprotected_parameters:
            warning.notes.append(
                Diagnostic(
                    check=CHECK_NAME,
                    severity="note",
                    message=PARAMETER_NOTE.format(name=occurrence.name),
                    location=occurrence.token.start,
                    source_range=occurrence.source_range,
                    fixits=_wrap_fixits(occurrence.source_range),
                )
            )

    return warning


class DiagnosticCollector:
    """Default diagnostic sink: keeps every reported warning in order."""

    def __init__(self) -> None:
        self.diagnostics: List[Diagnostic] = []

    def report(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)


# ============================================================
# ===================== CONFIGURATION ========================
# ============================================================

@dataclass
class CheckConfig:
    """
    Knobs for the check.

    - parameter_notes: emit a fix-it note per unprotected parameter use
    - legacy_bounds: reproduce the historical neighbour bounds of the
      parameter exemptions (see DESIGN.md)
    - clang_args: extra flags for the libclang front end
    - ignore_macros: regexes; fully matching macro names are not reported
    """
    parameter_notes: bool = True
    legacy_bounds: bool = False
    clang_args: List[str] = field(default_factory=list)
    ignore_macros: List[str] = field(default_factory=list)

    def is_ignored(self, macro_name: str) -> bool:
        return any(re.fullmatch(pattern, macro_name) for pattern in self.ignore_macros)


_BOOL_OPTIONS = ("parameter_notes", "legacy_bounds")
_LIST_OPTIONS = ("clang_args", "ignore_macros")


def config_from_mapping(raw: Any, origin: str = "<config>") -> CheckConfig:
    """
    Build a CheckConfig from a parsed YAML document. Settings may sit at the
    top level or under a `macroguard:` key. Bad entries are reported and
    skipped so the rest of the configuration still applies.
    """
    config = CheckConfig()
    if raw is None:
        return config
    if not isinstance(raw, dict):
        sys.stderr.write(f"[macroguard] Ignoring {origin}: expected a mapping.\n")
        return config
    if "macroguard" in raw and (raw["macroguard"] is None or isinstance(raw["macroguard"], dict)):
        # An empty `macroguard:` section parses as None.
        raw = raw["macroguard"] or {}

    for key, value in raw.items():
        if key in _BOOL_OPTIONS:
            if not isinstance(value, bool):
                sys.stderr.write(
                    f"[macroguard] Ignoring '{key}' in {origin}: expected true/false, got {value!r}.\n"
                )
                continue
            setattr(config, key, value)
        elif key in _LIST_OPTIONS:
            values = [value] if isinstance(value, str) else value
            if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
                sys.stderr.write(
                    f"[macroguard] Ignoring '{key}' in {origin}: expected a list of strings.\n"
                )
                continue
            if key == "ignore_macros":
                values = _valid_patterns(values, origin)
            setattr(config, key, list(values))
        else:
            sys.stderr.write(f"[macroguard] Unknown option '{key}' in {origin}.\n")

    return config


def _valid_patterns(patterns: List[str], origin: str) -> List[str]:
    valid: List[str] = []
    for pattern in patterns:
        try:
            re.compile(pattern)
        except re.error as exc:
            sys.stderr.write(
                f"[macroguard] Ignoring pattern {pattern!r} in {origin}: {exc}.\n"
            )
            continue
        valid.append(pattern)
    return valid


def load_config(path: Optional[str]) -> CheckConfig:
    """
    Load a CheckConfig from a YAML file.

    PyYAML stays optional: without it (or without a readable file) we warn and
    fall back to the defaults so analysis can proceed.
    """
    if not path:
        return CheckConfig()

    if yaml is None:
        sys.stderr.write(
            "[macroguard] PyYAML is not installed; using default configuration.\n"
        )
        return CheckConfig()

    try:
        with open(path, "r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle)
    except FileNotFoundError:
        sys.stderr.write(f"[macroguard] Config file not found: {path}\n")
        return CheckConfig()
    except OSError as exc:
        sys.stderr.write(f"[macroguard] Could not read config file {path}: {exc}\n")
        return CheckConfig()
    except yaml.YAMLError as exc:
        sys.stderr.write(f"[macroguard] Invalid YAML in {path}: {exc}\n")
        return CheckConfig()

    return config_from_mapping(raw, origin=path)


# ============================================================
# ================ MACRO DEFINITION DISPATCH =================
# ============================================================

MacroCallback = Callable[[MacroDefinition], None]


class MacroDefinitionDispatcher:
    """
    Hands every macro definition event to the registered callbacks, in
    registration order and in definition order.
    """

    def __init__(self) -> None:
        self._callbacks: List[MacroCallback] = []

    def add_callback(self, callback: MacroCallback) -> None:
        self._callbacks.append(callback)

    def dispatch(self, macro: MacroDefinition) -> None:
        for callback in self._callbacks:
            callback(macro)

    def dispatch_all(self, macros: Sequence[MacroDefinition]) -> None:
        for macro in macros:
            self.dispatch(macro)


class MacroBodyCheck:
    """
    Warns about function-like macros whose body or parameter uses are not
    parenthesized. Results go to whatever sink was injected.
    """

    name = CHECK_NAME

    def __init__(
        self,
        sink: Any,
        config: Optional[CheckConfig] = None,
        *,
        verbose: bool = False,
    ) -> None:
        self.sink = sink
        self.config = config or CheckConfig()
        self.verbose = verbose

    def register(self, dispatcher: MacroDefinitionDispatcher) -> None:
        dispatcher.add_callback(self.on_macro_defined)

    def on_macro_defined(self, macro: MacroDefinition) -> None:
        if not is_eligible(macro):
            return
        if self.config.is_ignored(macro.name):
            return

        result = analyze(macro.body, macro.parameter_set, legacy_bounds=self.config.legacy_bounds)
        if self.verbose:
            sys.stderr.write(
                f"[macroguard] {macro.name}: body {result.body_range.start} .. "
                f"{result.body_range.end}, compliant={result.is_compliant}\n"
            )

        diagnostic = build_diagnostic(macro, result, parameter_notes=self.config.parameter_notes)
        if diagnostic is not None:
            self.sink.report(diagnostic)


# ============================================================
# ==================== LIBCLANG FRONT END ====================
# ============================================================

_CLANG_MISSING_WARNED = False


def collect_macro_definitions(
    path: str,
    source: Optional[str] = None,
    clang_args: Optional[List[str]] = None,
) -> List[MacroDefinition]:
    """
    Lex a C file with libclang and return the macro definitions of the main
    file in definition order. `source` overrides the file contents on disk.
    Any front-end failure is reported and yields no macros.
    """
    canonical_path = os.path.abspath(path)

    if clang_cindex is None:
        _warn_once_clang_missing()
        return []

    if source is None and not os.path.exists(canonical_path):
        sys.stderr.write(f"[macroguard] Input file not found: {path}\n")
        return []

    try:
        index = clang_cindex.Index.create()
    except Exception as exc:  # pragma: no cover - libclang internal failure
        sys.stderr.write(f"[macroguard] Failed to initialize libclang: {exc}\n")
        return []

    unsaved_files = [(canonical_path, source)] if source is not None else None
    try:
        clang_tu = index.parse(
            canonical_path,
            args=_default_clang_args(clang_args),
            unsaved_files=unsaved_files,
            options=clang_cindex.TranslationUnit.PARSE_DETAILED_PROCESSING_RECORD,
        )
    except Exception as exc:
        sys.stderr.write(f"[macroguard] libclang could not parse '{path}': {exc}\n")
        return []

    macros: List[MacroDefinition] = []
    for cursor in clang_tu.cursor.get_children():
        if cursor.kind != clang_cindex.CursorKind.MACRO_DEFINITION:
            continue
        if not _cursor_in_main_file(cursor, canonical_path):
            continue
        macro = _macro_from_cursor(cursor, canonical_path)
        if macro is not None:
            macros.append(macro)
    return macros


def _warn_once_clang_missing() -> None:
    global _CLANG_MISSING_WARNED
    if _CLANG_MISSING_WARNED:
        return
    sys.stderr.write(
        "[macroguard] clang.cindex is not available; no macros will be analyzed.\n"
    )
    _CLANG_MISSING_WARNED = True


def _default_clang_args(extra_args: Optional[List[str]] = None) -> List[str]:
    """
    Determine the clang arguments to use. Users can append additional flags
    via the config file or the MACROGUARD_CLANG_ARGS environment variable.
    """
    base = ["-x", "c", "-std=c11"]
    base.extend(extra_args or [])
    extra = os.environ.get("MACROGUARD_CLANG_ARGS")
    if extra:
        base.extend(shlex.split(extra))
    return base


def _cursor_in_main_file(cursor: "clang_cindex.Cursor", canonical_main: str) -> bool:
    loc = cursor.location
    if loc is None or loc.file is None:
        return False
    return os.path.abspath(loc.file.name) == canonical_main


def _make_source_location(
    location: "clang_cindex.SourceLocation",
    fallback_path: str,
) -> SourceLocation:
    file_name = location.file.name if location.file is not None else fallback_path
    return SourceLocation(file=file_name, line=location.line, column=location.column)


def _make_source_range(
    extent: "clang_cindex.SourceRange",
    fallback_path: str,
) -> SourceRange:
    return SourceRange.between(
        _make_source_location(extent.start, fallback_path),
        _make_source_location(extent.end, fallback_path),
    )


def _macro_token_from_clang(token: "clang_cindex.Token", fallback_path: str) -> MacroToken:
    return MacroToken(
        kind=token_kind_for(token.spelling, token.kind.name == "IDENTIFIER"),
        spelling=token.spelling,
        start=_make_source_location(token.extent.start, fallback_path),
        end=_make_source_location(token.extent.end, fallback_path),
    )


def _macro_from_cursor(
    cursor: "clang_cindex.Cursor",
    canonical_main: str,
) -> Optional[MacroDefinition]:
    name = cursor.spelling
    if not name:
        return None

    # Some libclang releases hand back one token past the macro extent.
    end_offset = cursor.extent.end.offset
    try:
        raw_tokens = [
            token
            for token in cursor.get_tokens()
            if token.kind.name != "COMMENT" and token.extent.start.offset <= end_offset
        ]
    except Exception:
        raw_tokens = []

    tokens = list(raw_tokens)
    # Trim the leading '# define' tokens if present.
    if len(tokens) >= 2 and tokens[0].spelling == "#" and tokens[1].spelling == "define":
        tokens = tokens[2:]
    if not tokens or tokens[0].spelling != name:
        return None

    is_function_like = _is_function_like(cursor, tokens)
    params: List[str] = []
    body_start = 1
    if is_function_like:
        params, body_start = _parse_parameter_list(tokens)

    body = tuple(_macro_token_from_clang(token, canonical_main) for token in tokens[body_start:])
    return MacroDefinition(
        name=name,
        location=_make_source_location(cursor.location, canonical_main),
        is_function_like=is_function_like,
        params=tuple(params),
        body=body,
        source_range=_make_source_range(cursor.extent, canonical_main),
    )


def _is_function_like(cursor: "clang_cindex.Cursor", tokens: List["clang_cindex.Token"]) -> bool:
    checker = getattr(cursor, "is_macro_function_like", None)
    if checker is not None:
        try:
            return bool(checker())
        except Exception:
            pass
    # Without the libclang query: '(' must touch the macro name.
    if len(tokens) < 2 or tokens[1].spelling != "(":
        return False
    name_end = tokens[0].extent.end
    paren_start = tokens[1].extent.start
    return name_end.line == paren_start.line and name_end.column == paren_start.column


def _parse_parameter_list(tokens: List["clang_cindex.Token"]) -> Tuple[List[str], int]:
    """
    Split `NAME ( p1 , p2 , ... )` into parameter names and the index of the
    first body token. Variadic `...` is named __VA_ARGS__; GNU `args...`
    keeps its own name.
    """
    params: List[str] = []
    current: List[str] = []
    idx = 2
    while idx < len(tokens):
        spelling = tokens[idx].spelling
        idx += 1
        if spelling in (",", ")"):
            if current:
                params.append(_parameter_name("".join(current)))
                current = []
            if spelling == ")":
                break
        else:
            current.append(spelling)
    return params, idx


def _parameter_name(text: str) -> str:
    if text == "...":
        return "__VA_ARGS__"
    if text.endswith("..."):
        return text[:-3]
    return text


def analyze_files(
    paths: Sequence[str],
    config: Optional[CheckConfig] = None,
    *,
    verbose: bool = False,
) -> List[Diagnostic]:
    """
    Run the whole pipeline: front end -> dispatcher -> check -> collector.
    """
    config = config or CheckConfig()
    collector = DiagnosticCollector()
    dispatcher = MacroDefinitionDispatcher()
    MacroBodyCheck(collector, config, verbose=verbose).register(dispatcher)

    for path in paths:
        macros = collect_macro_definitions(path, clang_args=config.clang_args)
        dispatcher.dispatch_all(macros)

    return collector.diagnostics


# ============================================================
# ===================== DIAGNOSTIC OUTPUT ====================
# ============================================================

def _location_to_json_obj(location: SourceLocation) -> Dict[str, Any]:
    return {"file": location.file, "line": location.line, "column": location.column}


def _range_to_json_obj(source_range: Optional[SourceRange]) -> Optional[Dict[str, Any]]:
    if source_range is None:
        return None
    return {
        "file": source_range.file,
        "line_start": source_range.line_start,
        "col_start": source_range.col_start,
        "line_end": source_range.line_end,
        "col_end": source_range.col_end,
    }


def diagnostic_to_json_obj(d: Diagnostic, *, top_level: bool = True) -> Dict[str, Any]:
    """
    Convert a Diagnostic into a JSON-friendly dict.
    We keep this explicit so field order stays stable over time.
    """
    obj: Dict[str, Any] = {
        "check": d.check,
        "severity": d.severity,
        "message": d.message,
        "location": _location_to_json_obj(d.location),
        "range": _range_to_json_obj(d.source_range),
        "fixits": [
            {"location": _location_to_json_obj(fix.location), "text": fix.text}
            for fix in d.fixits
        ],
        "notes": [diagnostic_to_json_obj(note, top_level=False) for note in d.notes],
    }
    if top_level:
        obj["tool"] = TOOL_NAME
        obj["version"] = TOOL_VERSION
    return obj


def format_diagnostic_text(d: Diagnostic) -> str:
    """
    Clang-style rendering:
      file:line:col: warning: message [check]
      file:line:col: note: message
        fix-it: insert "(" at line:col
    """
    lines = [f"{d.location}: {d.severity}: {d.message} [{d.check}]"]
    for note in d.notes:
        lines.append(f"{note.location}: {note.severity}: {note.message}")
        for fix in note.fixits:
            lines.append(f'  fix-it: insert "{fix.text}" at {fix.location.line}:{fix.location.column}')
    return "\n".join(lines)


def emit_diagnostics(
    diagnostics: List[Diagnostic],
    out: Optional[str] = None,
    output_format: str = "json",
) -> None:
    """
    Serialize all diagnostics as JSON (list of warning objects) or text.
    """
    if output_format == "text":
        text = "\n".join(format_diagnostic_text(d) for d in diagnostics)
    else:
        as_json = [diagnostic_to_json_obj(d) for d in diagnostics]
        text = json.dumps(as_json, indent=2, sort_keys=False)
    if out:
        with open(out, "w", encoding="utf-8") as f:
            f.write(text + "\n")
    elif text:
        print(text)


# ============================================================
# ============================ CLI ===========================
# ============================================================

def main(argv: Optional[List[str]] = None) -> int:
    """
    CLI entry point for MacroGuard.
    Intended usage:
      macroguard check --config macroguard.yaml src/file1.c include/file2.h ...
    """
    parser = argparse.ArgumentParser(
        prog="macroguard",
        description="MacroGuard: parenthesization checks for C function-like macros"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    check_p = subparsers.add_parser(
        "check",
        help="Check macro definitions in one or more C files and emit diagnostics."
    )
    check_p.add_argument(
        "--config",
        metavar="CONFIG_YAML",
        help="YAML configuration file.",
        required=False,
    )
    check_p.add_argument(
        "--format",
        choices=("json", "text"),
        default="json",
        help="Output format (default: json).",
    )
    check_p.add_argument(
        "--out",
        metavar="OUT_FILE",
        help="Write diagnostics to this file instead of stdout.",
        required=False,
    )
    check_p.add_argument(
        "--verbose",
        action="store_true",
        help="Log every analyzed macro body range to stderr.",
    )
    check_p.add_argument(
        "files",
        nargs="+",
        help="C source or header files to check."
    )

    args = parser.parse_args(argv)

    if args.command == "check":
        config = load_config(args.config)
        diagnostics = analyze_files(args.files, config, verbose=args.verbose)
        emit_diagnostics(diagnostics, out=args.out, output_format=args.format)
        return 0

    # unreachable if parser is correct
    return 1


if __name__ == "__main__":
    sys.exit(main())
