import logging
import os
from contextlib import contextmanager
from typing import BinaryIO, Iterator, Optional

from lxml import etree

from marc_element import XmElem, build_element, count_elements
from marc_errors import ParseFailure, SchemaLoadError, SchemaMismatch

# Common MARC21 namespace and output envelope
NS = {
    "marc": "http://www.loc.gov/MARC21/slim",
    "xsi": "http://www.w3.org/2001/XMLSchema-instance",
}
MARC_PREFIX = "marc"
SCHEMA_LOCATION = (
    "http://www.loc.gov/MARC21/slim "
    "http://www.loc.gov/standards/marcxml/schema/MARC21slim.xsd"
)
OUTPUT_COMMENT = "<!-- Output by mxtool -->"

# Environment variables read by the command line tool
SCHEMA_ENV_VAR = "MXTOOL_XSD"
LOG_ENV_VAR = "MXTOOL_LOG"

logger = logging.getLogger("mxtool.reader")


def schema_path_from_env() -> Optional[str]:
    """Return the schema path configured through ``MXTOOL_XSD``."""
    return os.environ.get(SCHEMA_ENV_VAR) or None


def load_schema(xsd_path: Optional[str]) -> etree.XMLSchema:
    """Load the XML schema at ``xsd_path``."""
    if not xsd_path:
        raise SchemaLoadError(f"no schema given, check {SCHEMA_ENV_VAR} environment variable")
    try:
        schema = etree.XMLSchema(etree.parse(xsd_path))
    except (OSError, etree.XMLSyntaxError, etree.XMLSchemaParseError) as e:
        raise SchemaLoadError(
            f"could not load schema {xsd_path!r}, check {SCHEMA_ENV_VAR} environment variable: {e}"
        ) from e
    logger.debug("Loaded schema %s", xsd_path)
    return schema


@contextmanager
def open_schema(xsd_path: Optional[str] = None) -> Iterator[etree.XMLSchema]:
    """Provide a schema handle for the duration of a ``with`` block.

    Without ``xsd_path`` the path configured in ``MXTOOL_XSD`` is used.
    """
    schema = load_schema(xsd_path if xsd_path is not None else schema_path_from_env())
    try:
        yield schema
    finally:
        logger.debug("Schema handle released")


def read_collection(stream: BinaryIO, schema: etree.XMLSchema) -> XmElem:
    """Parse ``stream``, validate it against ``schema`` and copy it into a tree.

    The lxml document only lives inside this function; the caller owns the
    returned :class:`XmElem` and is responsible for releasing it.
    """
    try:
        doc = etree.parse(stream)
    except (etree.XMLSyntaxError, ValueError) as e:
        raise ParseFailure(f"failed to parse XML: {e}") from e

    if not schema.validate(doc):
        error = schema.error_log.last_error
        detail = f" (line {error.line}: {error.message})" if error is not None else ""
        raise SchemaMismatch(f"XML did not match schema{detail}")

    top = build_element(doc.getroot())
    logger.debug("Built tree <%s> with %d elements", top.tag, count_elements(top))
    return top


def load_collection(file_path: str, schema: etree.XMLSchema) -> XmElem:
    """Read and validate the MARCXML collection stored in ``file_path``."""
    try:
        with open(file_path, "rb") as infile:
            return read_collection(infile, schema)
    except OSError as e:
        raise ParseFailure(f"could not open XML file {file_path!r}: {e}") from e
