"""Error codes and classification for conversation turns."""

from enum import Enum

from wingman.service.chat.models import MessageError


class ErrorCode(str, Enum):
    SERVER_ERROR = "SERVER_ERROR"
    AUTH_ERROR = "AUTH_ERROR"
    NOT_FOUND_ERROR = "NOT_FOUND_ERROR"
    RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    COMPLETION_ERROR = "COMPLETION_ERROR"
    TOOL_NOT_FOUND = "TOOL_NOT_FOUND"
    TOOL_EXECUTION_ERROR = "TOOL_EXECUTION_ERROR"


ERROR_MESSAGES = {
    ErrorCode.SERVER_ERROR: "The model server encountered an internal error. Please try again later.",
    ErrorCode.AUTH_ERROR: "Authentication failed. Please check your API key or credentials.",
    ErrorCode.NOT_FOUND_ERROR: "The requested model or endpoint was not found.",
    ErrorCode.RATE_LIMIT_ERROR: "Too many requests. Please wait a moment and try again.",
    ErrorCode.NETWORK_ERROR: "Could not reach the model server. Please check your connection.",
    ErrorCode.COMPLETION_ERROR: "An error occurred while generating the response.",
}

MISSING_FINISH_REASON = "missing finish_reason"


def is_missing_finish_reason(error: BaseException) -> bool:
    """Whether an error is the upstream stream-termination quirk.

    Streams that end without a finish reason still delivered their content,
    so this error is swallowed without surfacing anything to the user.
    """
    return MISSING_FINISH_REASON in str(error)


def classify_completion_error(error: BaseException) -> MessageError:
    """Map a failed completion to an error code and readable message.

    Matching is by substring of the error text, in this order: 500, 401/403,
    404, 429, timeout/network; anything else is a COMPLETION_ERROR.

    Args:
        error: The exception that aborted the turn

    Returns:
        MessageError: Code and human-readable message
    """
    text = str(error)
    lowered = text.lower()

    if "500" in text:
        code = ErrorCode.SERVER_ERROR
    elif "401" in text or "403" in text:
        code = ErrorCode.AUTH_ERROR
    elif "404" in text:
        code = ErrorCode.NOT_FOUND_ERROR
    elif "429" in text:
        code = ErrorCode.RATE_LIMIT_ERROR
    elif "timeout" in lowered or "network" in lowered:
        code = ErrorCode.NETWORK_ERROR
    else:
        code = ErrorCode.COMPLETION_ERROR

    message = ERROR_MESSAGES[code]
    if code == ErrorCode.COMPLETION_ERROR and text:
        message = f"{message}\n{text}"
    return MessageError(code=code.value, message=message)


def tool_error(code: ErrorCode, message: str) -> MessageError:
    return MessageError(code=code.value, message=message)
