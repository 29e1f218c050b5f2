"""
Options for parsing and writing documents.
"""

import zipfile
from typing import Optional


class ParseOptions:
    """Options controlling how a package is read into a tree."""

    def __init__(
        self,
        document_name: Optional[str] = None,
        warn_on_fidelity_gaps: bool = False,
        resolve_document_properties: bool = True,
    ):
        """
        Args:
            document_name: Text of the root node (defaults to the file name
                when parsing from a path, else "Document")
            warn_on_fidelity_gaps: Log unmodelled properties at WARNING
                instead of DEBUG
            resolve_document_properties: Resolve DOCPROPERTY field values
                against the package's document properties
        """
        self.document_name = document_name
        self.warn_on_fidelity_gaps = warn_on_fidelity_gaps
        self.resolve_document_properties = resolve_document_properties


class WriteOptions:
    """Options controlling how a tree is written back to a package."""

    def __init__(
        self,
        compression: int = zipfile.ZIP_DEFLATED,
        validate_references: bool = True,
    ):
        """
        Args:
            compression: zipfile compression method for every part
            validate_references: Check media, hyperlink and data-binding
                references against the fidelity store before writing
        """
        self.compression = compression
        self.validate_references = validate_references
