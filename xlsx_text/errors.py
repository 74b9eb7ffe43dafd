"""
Error definitions for the xlsx-text reader
Every failure carries a category, a plain message and a hint on how to proceed
"""

from enum import Enum
from xml.etree.ElementTree import ParseError
from zipfile import BadZipFile


class ErrorCategory(Enum):
    """Error category definitions"""

    INVALID_REFERENCE = "invalid_reference"
    INVALID_SHARED_STRING_INDEX = "invalid_shared_string_index"
    UNSUPPORTED_CELL_TYPE = "unsupported_cell_type"
    UNSUPPORTED_NUMBER_FORMAT = "unsupported_number_format"
    CELL_COMPUTATION = "cell_computation"
    MISSING_REQUIRED_PART = "missing_required_part"
    MALFORMED_MARKUP = "malformed_markup"
    INVALID_PACKAGE = "invalid_package"
    WORKBOOK_CLOSED = "workbook_closed"
    WORKSHEET_NOT_FOUND = "worksheet_not_found"
    UNKNOWN = "unknown"


class XlsxTextError(Exception):
    """Base exception class for workbook reading operations"""

    def __init__(
        self,
        category: ErrorCategory,
        message: str,
        solution: str,
        original_error: Exception | None = None,
    ):
        self.category = category
        self.message = message
        self.solution = solution
        self.original_error = original_error
        super().__init__(self.get_formatted_message())

    def get_formatted_message(self) -> str:
        """Get formatted error message"""
        return f"{self.message} {self.solution}"


class InvalidReferenceError(XlsxTextError):
    def __init__(self, reference: str, original_error: Exception | None = None):
        self.reference = reference
        super().__init__(
            category=ErrorCategory.INVALID_REFERENCE,
            message=f"Invalid cell reference: {reference!r}.",
            solution="A reference is column letters (A to ZZZ) followed by a row number starting at 1, e.g. 'B12'.",
            original_error=original_error,
        )


class InvalidSharedStringIndexError(XlsxTextError):
    def __init__(
        self, index: str | int | None, size: int, reference: str | None = None
    ):
        self.index = index
        self.size = size
        self.reference = reference
        location = f" in cell {reference}" if reference else ""
        super().__init__(
            category=ErrorCategory.INVALID_SHARED_STRING_INDEX,
            message=f"Shared string index {index!r}{location} is not valid for a table of {size} strings.",
            solution="The shared strings part does not match the worksheet; the package may be truncated or hand-edited.",
        )


class UnsupportedCellTypeError(XlsxTextError):
    def __init__(self, tag: str, reference: str | None = None):
        self.tag = tag
        self.reference = reference
        location = f"Cell {reference} has" if reference else "Cell has"
        if tag == "d":
            solution = "Date-typed cells cannot be rendered as plain text. Store the value as text in the source workbook."
        else:
            solution = "Only the s, b, n, str, inlineStr and e cell types are understood."
        super().__init__(
            category=ErrorCategory.UNSUPPORTED_CELL_TYPE,
            message=f"{location} unsupported type {tag!r}.",
            solution=solution,
        )


class UnsupportedNumberFormatError(XlsxTextError):
    def __init__(self, code: str | None, reference: str | None = None):
        self.code = code
        self.reference = reference
        location = f" of cell {reference}" if reference else ""
        if code is None:
            message = f"The number format{location} could not be resolved from the styles part."
        else:
            message = f"The number format {code!r}{location} is not supported."
        super().__init__(
            category=ErrorCategory.UNSUPPORTED_NUMBER_FORMAT,
            message=message,
            solution="Only the General and Text (@) formats are passed through. Change the cell format to Text in the source workbook.",
        )


class CellComputationError(XlsxTextError):
    def __init__(self, reference: str | None, value: str | None = None):
        self.reference = reference
        self.value = value
        detail = f" ({value})" if value else ""
        super().__init__(
            category=ErrorCategory.CELL_COMPUTATION,
            message=f"Cell {reference} holds a formula error{detail}.",
            solution="Fix the formula in the source workbook and save it again.",
        )


class MissingRequiredPartError(XlsxTextError):
    def __init__(self, part_name: str, original_error: Exception | None = None):
        self.part_name = part_name
        super().__init__(
            category=ErrorCategory.MISSING_REQUIRED_PART,
            message=f"The package has no required part: {part_name}.",
            solution="Verify the file is a complete .xlsx workbook and not a different Office document.",
            original_error=original_error,
        )


class MalformedMarkupError(XlsxTextError):
    def __init__(self, part_name: str, original_error: Exception | None = None):
        self.part_name = part_name
        super().__init__(
            category=ErrorCategory.MALFORMED_MARKUP,
            message=f"The part {part_name} is not well-formed XML.",
            solution="The workbook is damaged. Open and re-save it in a spreadsheet application.",
            original_error=original_error,
        )


class InvalidPackageError(XlsxTextError):
    def __init__(self, source: str, original_error: Exception | None = None):
        self.source = source
        super().__init__(
            category=ErrorCategory.INVALID_PACKAGE,
            message=f"{source} is not a zip-based spreadsheet package.",
            solution="Only .xlsx/.xlsm files are supported; legacy .xls files must be converted first.",
            original_error=original_error,
        )


class WorkbookClosedError(XlsxTextError):
    def __init__(self):
        super().__init__(
            category=ErrorCategory.WORKBOOK_CLOSED,
            message="The workbook has been closed.",
            solution="Open the workbook again before reading its worksheets.",
        )


class WorksheetNotFoundError(XlsxTextError):
    def __init__(self, requested: str, candidates: list[str]):
        self.requested = requested
        self.candidates = candidates
        if candidates:
            solution = f"Did you mean one of: {', '.join(candidates)}?"
        else:
            solution = "Use the sheet listing to obtain the exact worksheet names."
        super().__init__(
            category=ErrorCategory.WORKSHEET_NOT_FOUND,
            message=f"The worksheet {requested!r} was not found.",
            solution=solution,
        )


def get_unknown_error(original_error: Exception) -> XlsxTextError:
    """Generate unknown error message"""
    return XlsxTextError(
        category=ErrorCategory.UNKNOWN,
        message="An unexpected error occurred while reading the workbook.",
        solution="Please check the input file.",
        original_error=original_error,
    )


def handle_xlsx_error(error: Exception, context: str = "") -> XlsxTextError:
    """
    Classify errors raised while reading a package into the error taxonomy

    Args:
        error: The exception that occurred
        context: The package part or file being processed when the error occurred

    Returns:
        XlsxTextError: Classified error (the error itself if already classified)
    """
    if isinstance(error, XlsxTextError):
        return error

    if isinstance(error, BadZipFile):
        return InvalidPackageError(context or "The source", error)
    elif isinstance(error, ParseError):
        return MalformedMarkupError(context or "<unknown>", error)
    elif isinstance(error, KeyError) and context:
        return MissingRequiredPartError(context, error)

    error_str = str(error).lower()
    if "closed" in error_str and "zip" in error_str:
        return WorkbookClosedError()
    elif "not a zip file" in error_str:
        return InvalidPackageError(context or "The source", error)

    return get_unknown_error(error)
