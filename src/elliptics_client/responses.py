"""
Parsers for the XML documents returned by the Elliptics proxy.

Upload response (write port, POST):

    <?xml version="1.0" encoding="utf-8"?>
    <post obj="photo.jpg" id="..." groups="2" size="1024" key="">
        <complete addr="10.0.0.1:1025" path="/srv/elliptics/2/..." group="1" status="0"/>
        <complete addr="10.0.0.2:1025" path="/srv/elliptics/2/..." group="2" status="0"/>
        <written>2</written>
    </post>

Download info (write port, GET download-info/<id>):

    <?xml version="1.0" encoding="utf-8"?>
    <download-info>
        <host>10.0.0.1</host>
        <path>/srv/elliptics/2/...</path>
        <group>1</group>
        <size>1024</size>
    </download-info>
"""

import logging
import xml.etree.ElementTree as ET
from typing import Dict, Optional


def _parse_document(payload: bytes, logger: logging.Logger) -> Optional[ET.Element]:
    try:
        return ET.fromstring(payload)
    except ET.ParseError as e:
        logger.warning(f"Malformed Elliptics response ({e}): {payload[:200]!r}")
        return None


def written_count(payload: bytes, logger: logging.Logger) -> int:
    """
    Extract the number of written replicas from an upload response.

    Uses the first direct `written` child holding an integer.

    :return: Written replica count, 0 when absent or unparseable
    """
    if not payload:
        return 0

    root = _parse_document(payload, logger)
    if root is None:
        return 0

    for element in root.findall('written'):
        text = (element.text or '').strip()
        try:
            return int(text)
        except ValueError:
            continue
    return 0


def is_upload_written(payload: bytes, logger: logging.Logger) -> bool:
    """True if the proxy reports at least one written replica."""
    return written_count(payload, logger) > 0


def parse_download_info(payload: bytes, logger: logging.Logger) -> Optional[Dict[str, str]]:
    """
    Flatten a download-info document into tag -> text pairs.

    Repeated tags keep the last value.

    :return: Mapping of fields (possibly empty), or None for a malformed document
    """
    root = _parse_document(payload, logger)
    if root is None:
        return None
    return {child.tag: (child.text or '').strip() for child in root}
