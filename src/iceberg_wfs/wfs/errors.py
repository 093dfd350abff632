"""
WFS error taxonomy and OWS ExceptionReport rendering.

Request validation failures are client errors (HTTP 400). An unsupported
CRS reaching the GML encoder is a server error (HTTP 500): the resolver
only lets EPSG:4326 and EPSG:3857 through, so hitting it means a caller
bypassed validation.
"""

from typing import Optional

from lxml import etree

OWS_NS = "http://www.opengis.net/ows/1.1"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"
XML_NS = "http://www.w3.org/XML/1998/namespace"

_OWS_SCHEMA_LOCATION = (
    "http://www.opengis.net/ows/1.1 "
    "http://schemas.opengis.net/ows/1.1.0/owsExceptionReport.xsd"
)


class WfsError(Exception):
    """Base error, rendered as an ows:ExceptionReport."""

    code = "NoApplicableCode"
    status_code = 400

    def __init__(self, message: str, locator: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.locator = locator

    def to_xml(self) -> bytes:
        report = etree.Element(
            etree.QName(OWS_NS, "ExceptionReport"),
            nsmap={"ows": OWS_NS, "xsi": XSI_NS},
        )
        report.set("version", "2.0.0")
        report.set(etree.QName(XML_NS, "lang"), "en-US")
        report.set(etree.QName(XSI_NS, "schemaLocation"), _OWS_SCHEMA_LOCATION)

        exception = etree.SubElement(report, etree.QName(OWS_NS, "Exception"))
        exception.set("exceptionCode", self.code)
        if self.locator:
            exception.set("locator", self.locator)
        text = etree.SubElement(exception, etree.QName(OWS_NS, "ExceptionText"))
        text.text = self.message

        return etree.tostring(
            report, pretty_print=True, xml_declaration=True, encoding="UTF-8"
        )


class MissingParameterValue(WfsError):
    code = "MissingParameterValue"


class InvalidParameterValue(WfsError):
    code = "InvalidParameterValue"


class OperationNotSupported(WfsError):
    code = "OperationNotSupported"


class UnsupportedCRSError(WfsError):
    """Raised when geometry must be encoded in a CRS we cannot produce."""

    status_code = 500

    def __init__(self, srs_name):
        super().__init__(f"Unsupported srsName: {srs_name!r}", locator="srsName")
        self.srs_name = srs_name
