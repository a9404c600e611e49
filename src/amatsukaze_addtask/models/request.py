"""AddQueue request model and its DataContract XML serialization.

The server deserializes requests with WCF's DataContractSerializer, so the
element order, the namespace declarations and the ``i:nil`` convention for
nullable strings all have to match exactly::

    <AddQueueRequest xmlns="..Amatsukaze.Server" xmlns:i="..XMLSchema-instance">
      <AddQueueBat i:nil="true"></AddQueueBat>
      <DirPath i:nil="true"></DirPath>
      <Mode>AutoBatch</Mode>
      <Outputs><OutputInfo>
        <DstPath/> <Priority/> <Profile/>
      </OutputInfo></Outputs>
      <RequestId/>
      <Targets><AddQueueItem>
        <Hash i:nil="true"></Hash> <Path/>
      </AddQueueItem></Targets>
    </AddQueueRequest>

The real output contains no whitespace between elements.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from xml.sax.saxutils import escape

DATACONTRACT_NS = "http://schemas.datacontract.org/2004/07/Amatsukaze.Server"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"

DEFAULT_MODE = "AutoBatch"
DEFAULT_PRIORITY = 3

# Characters outside the XML 1.0 Char production, lone surrogates included.
_INVALID_XML_CHARS = re.compile("[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")
_WHITESPACE_ENTITIES = {"\t": "&#x9;", "\n": "&#xA;", "\r": "&#xD;"}


def nullable(text: str | None) -> str | None:
    """Map an empty flag value to an absent one."""
    return text or None


def xml_text(text: str) -> str:
    """Escape element text for the server's XML reader.

    Characters XML cannot carry, such as undecodable file name bytes that
    arrive surrogate-escaped, become U+FFFD. Tab, newline and carriage
    return are written as character references so the reader keeps them.
    """
    return escape(_INVALID_XML_CHARS.sub("\ufffd", text), _WHITESPACE_ENTITIES)


def element(name: str, text: str) -> str:
    return f"<{name}>{xml_text(text)}</{name}>"


def nullable_element(name: str, value: str | None) -> str:
    """Serialize a nullable string with an explicit ``i:nil`` marker.

    ``None`` is emitted as ``i:nil="true"`` with no content. Any string,
    including ``""``, is emitted as ``i:nil="false"`` with its text.
    """
    if value is None:
        return f'<{name} i:nil="true"></{name}>'
    return f'<{name} i:nil="false">{xml_text(value)}</{name}>'


@dataclass
class OutputInfo:
    """Where and how the encoded file is produced."""

    dst_path: str
    profile: str
    priority: int = DEFAULT_PRIORITY

    def to_xml(self) -> str:
        return (
            "<OutputInfo>"
            + element("DstPath", self.dst_path)
            + element("Priority", str(self.priority))
            + element("Profile", self.profile)
            + "</OutputInfo>"
        )


@dataclass
class QueueItem:
    """A single input file to enqueue."""

    path: str
    hash: str | None = None

    def to_xml(self) -> str:
        return (
            "<AddQueueItem>"
            + nullable_element("Hash", self.hash)
            + element("Path", self.path)
            + "</AddQueueItem>"
        )


@dataclass
class AddQueueRequest:
    """An "add queue" request for the Amatsukaze server."""

    outputs: OutputInfo
    targets: list[QueueItem]
    mode: str = DEFAULT_MODE
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    add_queue_bat: str | None = None
    dir_path: str | None = None

    @classmethod
    def for_file(
        cls,
        input_path: str,
        dst_path: str,
        profile: str,
        *,
        mode: str = DEFAULT_MODE,
        priority: int = DEFAULT_PRIORITY,
        request_id: str | None = None,
    ) -> AddQueueRequest:
        """Build a request that enqueues one file with one output."""
        request = cls(
            outputs=OutputInfo(dst_path=dst_path, profile=profile, priority=priority),
            targets=[QueueItem(path=input_path)],
            mode=mode,
        )
        if request_id is not None:
            request.request_id = request_id
        return request

    def to_xml(self) -> str:
        targets = "".join(item.to_xml() for item in self.targets)
        return (
            f'<AddQueueRequest xmlns="{DATACONTRACT_NS}" xmlns:i="{XSI_NS}">'
            + nullable_element("AddQueueBat", self.add_queue_bat)
            + nullable_element("DirPath", self.dir_path)
            + element("Mode", self.mode)
            + "<Outputs>"
            + self.outputs.to_xml()
            + "</Outputs>"
            + element("RequestId", self.request_id)
            + "<Targets>"
            + targets
            + "</Targets>"
            + "</AddQueueRequest>"
        )

    def to_bytes(self) -> bytes:
        return self.to_xml().encode("utf-8")
