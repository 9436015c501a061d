"""Markup (XML) adapter.

Rewrites the text of elements, or the value of attributes, selected by an
ElementPath expression across one file or every `*.xml` file in a directory.

Supported expressions:
- `//country`: any `country` element, the document element included.
- `/catalog/item/country`: absolute path from the document element.
- `item/country`: path relative to the document element.
- `//country/@code`: the `code` attribute of matched elements.
- Predicates such as `//name[@lang='en']` and namespace prefixes declared in
  the document (`//geo:country`).

Files where no value changes are left untouched. Rewritten files keep their
prolog (declaration, DOCTYPE, comments, processing instructions) and anything
after the document element byte for byte; the document element itself is
re-serialized by ElementTree in the declared encoding.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import re
from typing import Mapping, Union
import xml.etree.ElementTree as ET

from defusedxml import DefusedXmlException
from defusedxml.ElementTree import DefusedXMLParser, ParseError

from ..errors import ConfigurationError, NormalizationError, SourceError
from ..io.atomic import atomic_replace
from ..lookup.records import OutputFormat
from ..lookup.resolver import CountryResolver, Resolved
from ..models.datatypes import FileReport
from ..telemetry.logger import RunLogger
from .batch import ProgressListener, run_batch

MARKUP_PATTERNS = ("*.xml",)

_DECLARED_ENCODING = re.compile(
    rb"""(?:\xef\xbb\xbf)?\s*<\?xml[^>]*?\bencoding\s*=\s*["']([A-Za-z0-9._-]+)["']"""
)
_RESERVED_PREFIX = re.compile(r"ns\d+$")


@dataclass(frozen=True, slots=True)
class ElementText:
    """Matched element whose text content is normalized."""

    element: ET.Element

    def read(self) -> str:
        return self.element.text or ""

    def write(self, value: str) -> None:
        self.element.text = value


@dataclass(frozen=True, slots=True)
class AttributeValue:
    """Matched attribute whose string value is normalized."""

    element: ET.Element
    name: str

    def read(self) -> str:
        return self.element.get(self.name, "")

    def write(self, value: str) -> None:
        self.element.set(self.name, value)


MatchedNode = Union[ElementText, AttributeValue]


def _qualify(name: str, namespaces: Mapping[str, str]) -> str:
    """Expand a `prefix:local` name into ElementTree's `{uri}local` form."""

    prefix, separator, local = name.partition(":")
    if not separator:
        return name
    try:
        return f"{{{namespaces[prefix]}}}{local}"
    except KeyError as exc:
        raise ConfigurationError(
            f"Unknown namespace prefix `{prefix}` in attribute `{name}`."
        ) from exc


@dataclass(frozen=True, slots=True)
class MarkupPath:
    """Parsed path expression: an element path plus an optional attribute step."""

    expression: str
    element_path: str
    attribute: str | None = None

    @classmethod
    def parse(cls, expression: str) -> MarkupPath:
        """Split an expression into its element path and attribute name.

        Raises:
            ConfigurationError: If the expression or its attribute step is empty.
        """

        text = expression.strip()
        if not text:
            raise ConfigurationError(
                "Path expression for markup sources must not be empty.",
                hint="Pass an expression such as `//country` or `//country/@code` via `--location`.",
            )

        head, separator, tail = text.rpartition("@")
        attribute: str | None = None
        element_path = text
        is_attribute_step = separator and (not head or head.endswith("/"))
        if is_attribute_step and "/" not in tail and "[" not in tail:
            attribute = tail.strip()
            if not attribute:
                raise ConfigurationError(f"Path expression `{expression}` has an empty attribute step.")
            element_path = head[:-1] if head.endswith("/") and head != "/" else head
            if head.endswith("//"):
                element_path = head + "*"
            element_path = element_path or "."
        return cls(expression=text, element_path=element_path, attribute=attribute)

    def select(self, root: ET.Element, namespaces: Mapping[str, str]) -> list[MatchedNode]:
        """Evaluate the expression against a document element.

        Raises:
            ConfigurationError: If ElementPath rejects the expression.
        """

        try:
            elements = self._select_elements(root, namespaces)
        except (SyntaxError, KeyError) as exc:
            raise ConfigurationError(
                f"Invalid path expression `{self.expression}`: {exc}"
            ) from exc

        elements = [element for element in elements if isinstance(element.tag, str)]
        if self.attribute is None:
            return [ElementText(element) for element in elements]
        name = _qualify(self.attribute, namespaces)
        return [AttributeValue(element, name) for element in elements if name in element.attrib]

    def _select_elements(
        self, root: ET.Element, namespaces: Mapping[str, str]
    ) -> list[ET.Element]:
        path = self.element_path
        if path in {".", "/"}:
            return [root]
        if path.startswith("/"):
            # A detached parent lets absolute and `//` paths see the document element.
            document = ET.Element("document")
            document.append(root)
            return document.findall("." + path, dict(namespaces))
        return root.findall(path, dict(namespaces))


class _RecordingTarget:
    """Tree builder target that keeps comments and records namespace prefixes.

    It also records the byte offset of the document element's start tag, which
    marks the end of the prolog.
    """

    def __init__(self) -> None:
        self._builder = ET.TreeBuilder(insert_comments=True, insert_pis=True)
        self.namespaces: dict[str, str] = {}
        self.root_offset: int | None = None
        self.expat = None

    def start(self, tag: str, attrib: dict[str, str]) -> ET.Element:
        if self.root_offset is None and self.expat is not None:
            self.root_offset = self.expat.CurrentByteIndex
        return self._builder.start(tag, attrib)

    def end(self, tag: str) -> ET.Element:
        return self._builder.end(tag)

    def data(self, data: str) -> None:
        self._builder.data(data)

    def comment(self, text: str) -> ET.Element:
        return self._builder.comment(text)

    def pi(self, target: str, text: str | None = None) -> ET.Element:
        return self._builder.pi(target, text)

    def start_ns(self, prefix: str, uri: str) -> None:
        self.namespaces.setdefault(prefix or "", uri)

    def close(self) -> ET.Element:
        return self._builder.close()


@dataclass(slots=True)
class _ParsedDocument:
    root: ET.Element
    namespaces: dict[str, str]
    prolog: bytes
    epilogue: bytes
    encoding: str


def _epilogue_offset(data: bytes) -> int:
    """Return where the comments, PIs and whitespace after the document element start."""

    end = len(data)
    while True:
        stripped = data[:end].rstrip()
        if stripped.endswith(b"-->"):
            start = stripped.rfind(b"<!--")
        elif stripped.endswith(b"?>"):
            start = stripped.rfind(b"<?")
        else:
            return len(stripped)
        if start < 0:
            return len(stripped)
        end = start


def _parse_document(path: Path) -> _ParsedDocument:
    """Parse a file with entity expansion and external references refused.

    The raw bytes around the document element (declaration, DOCTYPE, comments,
    processing instructions, trailing whitespace) are kept for the rewrite.
    """

    data = path.read_bytes()
    target = _RecordingTarget()
    parser = DefusedXMLParser(target=target)
    target.expat = parser.parser
    parser.feed(data)
    root = parser.close()

    prolog = data[: target.root_offset or 0]
    declared = _DECLARED_ENCODING.match(prolog)
    return _ParsedDocument(
        root=root,
        namespaces=target.namespaces,
        prolog=prolog,
        epilogue=data[_epilogue_offset(data):],
        encoding=declared.group(1).decode("ascii") if declared else "utf-8",
    )


class MarkupAdapter:
    """Normalize matched XML text and attribute values in place."""

    stage = "xml"

    def __init__(
        self,
        path_expression: str,
        to: OutputFormat | str,
        resolver: CountryResolver | None = None,
        progress: ProgressListener | None = None,
        run_logger: RunLogger | None = None,
    ) -> None:
        self.path = MarkupPath.parse(path_expression)
        self.to = OutputFormat.parse(to)
        self._resolver = resolver or CountryResolver()
        self._progress = progress
        self._run_logger = run_logger

    def normalize(self, location: Path) -> list[FileReport]:
        """Normalize matched nodes in every XML file at `location`."""

        return run_batch(Path(location), MARKUP_PATTERNS, self.normalize_file, self._progress)

    def normalize_file(self, path: Path) -> FileReport:
        """Parse, rewrite matched nodes, and atomically replace one file."""

        if self._run_logger is not None:
            self._run_logger.log_source_start(self.stage, path)
        try:
            document = _parse_document(path)
            report = FileReport(path=path)
            for node in self.path.select(document.root, document.namespaces):
                self._normalize_node(node, report)
            if report.changed:
                self._write_document(path, document)
        except NormalizationError as exc:
            self._log_failure(type(exc).__name__)
            raise
        except (ParseError, DefusedXmlException) as exc:
            self._log_failure(type(exc).__name__)
            raise SourceError(f"Failed to parse XML file `{path}`: {exc}") from exc
        except OSError as exc:
            self._log_failure(type(exc).__name__)
            raise SourceError(f"Failed to rewrite XML file `{path}`: {exc}") from exc

        if self._run_logger is not None:
            self._run_logger.log_source_complete(self.stage, path, **report.as_counts())
        return report

    def _normalize_node(self, node: MatchedNode, report: FileReport) -> None:
        """Resolve one matched node and write the output back when it differs."""

        current = node.read()
        value = current.strip()
        if not value:
            return
        report.matched += 1
        result = self._resolver.resolve(value, self.to)
        if not isinstance(result, Resolved):
            report.unresolved += 1
            if self._run_logger is not None:
                self._run_logger.log_unresolved(self.stage, report.path, value)
            return
        if result.output != current:
            node.write(result.output)
            report.changed += 1

    def _write_document(self, path: Path, document: _ParsedDocument) -> None:
        for prefix, uri in document.namespaces.items():
            # ElementTree reserves `nsN` prefixes and regenerates them itself.
            if not _RESERVED_PREFIX.match(prefix):
                ET.register_namespace(prefix, uri)
        tree = ET.ElementTree(document.root)
        with atomic_replace(path, binary=True) as handle:
            handle.write(document.prolog)
            tree.write(handle, encoding=document.encoding, xml_declaration=False)
            handle.write(document.epilogue)

    def _log_failure(self, error_type: str) -> None:
        if self._run_logger is not None:
            self._run_logger.log_failure(self.stage, error_type)
