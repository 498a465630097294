"""hackathon_etl.document

XML document reader for submission batches.

Expected shape:

    <Projects>
      <Project>
        <Id>1</Id>
        <TeamName>...</TeamName>
        ...
      </Project>
    </Projects>

Only direct <Project> children of the root element are candidates.
A missing or malformed document is fatal for the whole batch.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path

from hackathon_etl.shared import DocumentError
from hackathon_etl.submission import FIELD_NAMES

RECORD_TAG = "Project"


def candidate_from_element(elem: ET.Element) -> dict[str, str]:
    """Return the raw field strings of one <Project> element.

    Missing child elements map to "".
    """
    return {name: elem.findtext(name) or "" for name in FIELD_NAMES}


def read_candidates(xml_path: str | Path) -> list[dict[str, str]]:
    """Parse the document and return raw candidates in document order.

    Raises:
        DocumentError: path is blank, the file does not exist, or the
            file is not well-formed XML.
    """
    if not str(xml_path).strip():
        raise DocumentError("xml_path is empty")
    path = Path(xml_path)
    if not path.is_file():
        raise DocumentError(f"XML input file not found: {path}")
    try:
        tree = ET.parse(path)
    except ET.ParseError as exc:
        raise DocumentError(f"Failed to load XML file {path}: {exc}") from exc
    return [candidate_from_element(el) for el in tree.getroot().findall(RECORD_TAG)]
