"""OCEL XML dialect.

Layout of a document:

    <log>
      <global>
        <attribute name="version"><string>1.0</string></attribute>
      </global>
      <declarations scope="event">
        <declaration name="price" kind="float"/>
      </declarations>
      <declarations scope="object">...</declarations>
      <events>
        <event id="e1" activity="place order" timestamp="2024-01-01T10:00:00.000+00:00">
          <attribute name="price">12.5</attribute>
          <object-ref id="o1"/>
        </event>
      </events>
      <objects>
        <object id="o1" type="order">
          <attribute name="status" time="...">open</attribute>
          <attribute name="status" time="...">closed</attribute>
        </object>
      </objects>
    </log>

Declarations come first because scalar attribute values are bare text that
only makes sense against the declared kind. Decoding therefore reads the
declaration tables before any event or object. List and map values are
written as typed child elements (<string>, <integer>, ..., <list>,
<map><entry key="..."/></map>) and need no declaration to parse. Object
attribute histories are repeated <attribute> elements in assignment order.
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from datetime import datetime
from typing import assert_never

from ocelconv.codecs.base import BaseCodec, EncodeOptions, OcelFormat
from ocelconv.errors import DecodeError, EncodeError, SchemaMismatch
from ocelconv.models.ocel import (
    AttributeScope,
    ObjectAttributeEntry,
    OcelEvent,
    OcelLog,
    OcelObject,
)
from ocelconv.models.values import (
    BooleanValue,
    FloatValue,
    IntegerValue,
    ListValue,
    MapValue,
    OcelValue,
    StringValue,
    TimestampValue,
    ValueKind,
    format_scalar,
    format_timestamp,
    kind_of,
    parse_scalar,
    parse_timestamp,
)
from ocelconv.validation.semantic import validate_log

logger = logging.getLogger(__name__)

# Characters XML 1.0 cannot carry, not even as character references
_FORBIDDEN_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

def _fill(element: ET.Element, value: OcelValue) -> ET.Element:
    """Write a value into an element: text for scalars, typed children otherwise."""
    match value:
        case StringValue() | IntegerValue() | FloatValue() | BooleanValue() | TimestampValue():
            element.text = format_scalar(value)
        case ListValue():
            for item in value.value:
                element.append(_typed_element(item))
        case MapValue():
            for key, item in value.value.items():
                entry = ET.SubElement(element, "entry", key=key)
                entry.append(_typed_element(item))
        case _:
            assert_never(value)
    return element


def _typed_element(value: OcelValue) -> ET.Element:
    return _fill(ET.Element(value.kind), value)


def _declared_attribute(
    parent: ET.Element,
    name: str,
    value: OcelValue,
    declarations: dict[str, ValueKind],
    owner: str,
) -> ET.Element:
    declared = declarations[name]
    if kind_of(value) != declared:
        raise EncodeError(
            f"{owner}: attribute '{name}' holds {value.kind} but is declared {declared.value}"
        )
    return _fill(ET.SubElement(parent, "attribute", name=name), value)


def log_to_element(log: OcelLog) -> ET.Element:
    """Build the <log> element. Every attribute in use must be declared."""
    root = ET.Element("log")

    global_el = ET.SubElement(root, "global")
    for name, value in log.global_attributes.items():
        ET.SubElement(global_el, "attribute", name=name).append(_typed_element(value))

    for scope in AttributeScope:
        decls_el = ET.SubElement(root, "declarations", scope=scope.value)
        for name, kind in log.declarations(scope).items():
            ET.SubElement(decls_el, "declaration", name=name, kind=kind.value)

    events_el = ET.SubElement(root, "events")
    for event in log.events.values():
        event_el = ET.SubElement(
            events_el,
            "event",
            id=event.id,
            activity=event.activity,
            timestamp=format_timestamp(event.timestamp),
        )
        owner = f"event '{event.id}'"
        for name, value in event.attributes.items():
            _declared_attribute(event_el, name, value, log.event_attribute_declarations, owner)
        for object_id in sorted(event.object_refs):
            ET.SubElement(event_el, "object-ref", id=object_id)

    objects_el = ET.SubElement(root, "objects")
    for obj in log.objects.values():
        object_el = ET.SubElement(objects_el, "object", id=obj.id, type=obj.type)
        owner = f"object '{obj.id}'"
        for name, entries in obj.attributes.items():
            for entry in entries:
                attr_el = _declared_attribute(
                    object_el, name, entry.value, log.object_attribute_declarations, owner
                )
                if entry.time is not None:
                    attr_el.set("time", format_timestamp(entry.time))

    return root


def _check_characters(root: ET.Element) -> None:
    for element in root.iter():
        for text in (element.text or "", *element.attrib.values()):
            found = _FORBIDDEN_CHARS.search(text)
            if found:
                raise EncodeError(
                    f"<{element.tag}> contains character {found.group()!r}, which XML 1.0 cannot represent"
                )


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def _required(element: ET.Element, attribute: str) -> str:
    value = element.get(attribute)
    if value is None:
        raise DecodeError(f"<{element.tag}> is missing the '{attribute}' attribute")
    return value


def _time(text: str, where: str) -> datetime:
    try:
        return parse_timestamp(text)
    except ValueError as exc:
        raise DecodeError(f"{where}: invalid timestamp {text!r}") from exc


def _read_typed(element: ET.Element) -> OcelValue:
    """Read a self-describing value element such as <integer>3</integer>."""
    try:
        kind = ValueKind(element.tag)
    except ValueError:
        raise DecodeError(f"Unknown value element <{element.tag}>") from None
    return _read_as(element, kind)


def _read_as(element: ET.Element, kind: ValueKind) -> OcelValue:
    """Read an element's content as a value of the given kind."""
    if kind is ValueKind.LIST:
        return ListValue(value=tuple(_read_typed(child) for child in element))
    if kind is ValueKind.MAP:
        items: dict[str, OcelValue] = {}
        for entry in element:
            if entry.tag != "entry" or len(entry) != 1:
                raise DecodeError("Map entries must be <entry key=...> with exactly one value")
            items[_required(entry, "key")] = _read_typed(entry[0])
        return MapValue(value=items)
    try:
        return parse_scalar(kind, element.text or "")
    except ValueError as exc:
        raise SchemaMismatch(
            f"<{element.tag}> text {element.text!r} is not a valid {kind.value}"
        ) from exc


def _read_declarations(root: ET.Element) -> dict[AttributeScope, dict[str, ValueKind]]:
    tables: dict[AttributeScope, dict[str, ValueKind]] = {scope: {} for scope in AttributeScope}
    for decls_el in root.findall("declarations"):
        try:
            scope = AttributeScope(_required(decls_el, "scope"))
        except ValueError:
            raise DecodeError(f"Unknown declaration scope '{decls_el.get('scope')}'") from None
        for decl in decls_el.findall("declaration"):
            name = _required(decl, "name")
            try:
                tables[scope][name] = ValueKind(_required(decl, "kind"))
            except ValueError:
                raise DecodeError(
                    f"Attribute '{name}' declared with unknown kind '{decl.get('kind')}'"
                ) from None
    return tables


def _read_declared(
    element: ET.Element,
    declarations: dict[str, ValueKind],
    scope: AttributeScope,
    owner: str,
) -> tuple[str, OcelValue]:
    name = _required(element, "name")
    kind = declarations.get(name)
    if kind is None:
        raise DecodeError(f"{owner}: {scope.value} attribute '{name}' has no declared kind")
    try:
        return name, _read_as(element, kind)
    except SchemaMismatch as exc:
        raise SchemaMismatch(f"{owner}: attribute '{name}': {exc.reason}") from exc


def _read_event(event_el: ET.Element, declarations: dict[str, ValueKind]) -> OcelEvent:
    event_id = _required(event_el, "id")
    owner = f"event '{event_id}'"
    attributes: dict[str, OcelValue] = {}
    refs: set[str] = set()
    for child in event_el:
        if child.tag == "attribute":
            name, value = _read_declared(child, declarations, AttributeScope.EVENT, owner)
            if name in attributes:
                raise DecodeError(f"{owner}: attribute '{name}' appears twice")
            attributes[name] = value
        elif child.tag == "object-ref":
            refs.add(_required(child, "id"))
        else:
            raise DecodeError(f"{owner}: unexpected element <{child.tag}>")
    return OcelEvent(
        id=event_id,
        activity=_required(event_el, "activity"),
        timestamp=_time(_required(event_el, "timestamp"), owner),
        attributes=attributes,
        object_refs=frozenset(refs),
    )


def _read_object(object_el: ET.Element, declarations: dict[str, ValueKind]) -> OcelObject:
    object_id = _required(object_el, "id")
    owner = f"object '{object_id}'"
    history: dict[str, list[ObjectAttributeEntry]] = {}
    for child in object_el:
        if child.tag != "attribute":
            raise DecodeError(f"{owner}: unexpected element <{child.tag}>")
        name, value = _read_declared(child, declarations, AttributeScope.OBJECT, owner)
        time_text = child.get("time")
        time = _time(time_text, owner) if time_text is not None else None
        history.setdefault(name, []).append(ObjectAttributeEntry(value=value, time=time))
    return OcelObject(
        id=object_id,
        type=_required(object_el, "type"),
        attributes={name: tuple(entries) for name, entries in history.items()},
    )


def log_from_element(root: ET.Element) -> OcelLog:
    """Decode a <log> element in two passes: declarations first, then content."""
    if root.tag != "log":
        raise DecodeError(f"Expected <log> root element, got <{root.tag}>")

    tables = _read_declarations(root)
    event_decls = tables[AttributeScope.EVENT]
    object_decls = tables[AttributeScope.OBJECT]

    global_attributes: dict[str, OcelValue] = {}
    for attr_el in root.findall("global/attribute"):
        if len(attr_el) != 1:
            raise DecodeError("Global attributes must hold exactly one value element")
        global_attributes[_required(attr_el, "name")] = _read_typed(attr_el[0])

    events = [_read_event(el, event_decls) for el in root.findall("events/event")]
    objects = [_read_object(el, object_decls) for el in root.findall("objects/object")]
    try:
        return OcelLog.from_items(
            events,
            objects,
            event_attribute_declarations=event_decls,
            object_attribute_declarations=object_decls,
            global_attributes=global_attributes,
        )
    except ValueError as exc:
        raise DecodeError(str(exc)) from exc


class XmlCodec(BaseCodec):
    """Reads and writes the OCEL XML dialect (.xmlocel)."""

    @property
    def format(self) -> OcelFormat:
        return OcelFormat.XML

    @property
    def extensions(self) -> tuple[str, ...]:
        return (".xmlocel",)

    def decode(self, data: bytes, *, validate: bool = False) -> OcelLog:
        try:
            root = ET.fromstring(data)
        except ET.ParseError as exc:
            raise DecodeError(f"Malformed XML: {exc}") from exc

        log = log_from_element(root)
        if validate:
            validate_log(log)
        logger.debug("Decoded XML log: %d events, %d objects", len(log.events), len(log.objects))
        return log

    def encode(self, log: OcelLog, options: EncodeOptions | None = None) -> bytes:
        options = options or EncodeOptions()
        # XML needs a kind for every attribute up front
        log = log.with_inferred_declarations()
        if options.validate:
            validate_log(log)

        root = log_to_element(log)
        _check_characters(root)
        if options.pretty:
            ET.indent(root)
        data = ET.tostring(root, encoding="utf-8", xml_declaration=True)
        # ElementTree escapes CR in attribute values only; parsers turn a raw CR in text into LF
        return data.replace(b"\r", b"&#13;")
