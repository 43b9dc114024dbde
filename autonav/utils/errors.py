"""Error handling and formatting utilities."""


class UserError(Exception):
    """Errors shown to user - must be clear and actionable."""
    pass


class ValidationError(UserError):
    """Input validation errors (configuration values, CLI arguments)."""
    pass


class PathNotFoundError(UserError):
    """Requested path is not present in a path library."""
    pass


def format_error(error_type, message, suggestion=None):
    """Format an error message for display.

    Args:
        error_type (str): Type of error (e.g., "NO_THRUSTERS", "PATH_NOT_FOUND")
        message (str): Error message
        suggestion (str, optional): Helpful suggestion for the user

    Returns:
        str: Formatted error message
    """
    output = f"⚠ {error_type}: {message}"
    if suggestion:
        output += f"\n  → {suggestion}"
    return output


def format_success(message, details=None):
    """Format a success message for display.

    Args:
        message (str): Success message
        details (dict, optional): Additional details to display

    Returns:
        str: Formatted success message
    """
    output = f"✓ {message}"
    if details:
        for key, value in details.items():
            output += f"\n  {key}: {value}"
    return output


def format_info(message):
    """Format an info message for display."""
    return f"ℹ {message}"


def missing_device_error(component, device_label):
    """Build the initialization failure for an absent class of device.

    Args:
        component (str): Component reporting the failure (e.g. "Navigator")
        device_label (str): Human-readable device class (e.g. "remote control")

    Returns:
        dict: Error dictionary
    """
    code = "NO_" + device_label.upper().replace(" ", "_").replace("-", "_")
    return error_dict(code, f"{component}: No {device_label} found!")


def empty_group_error(component, group_label, device_label):
    """Build the initialization failure for an empty classification group.

    Args:
        component (str): Component reporting the failure
        group_label (str): Group name (e.g. "forward", "forward-top-right")
        device_label (str): Device class in plural form (e.g. "thrusters")

    Returns:
        dict: Error dictionary
    """
    code = "EMPTY_" + group_label.upper().replace(" ", "_").replace("-", "_") + "_GROUP"
    return error_dict(code, f"{component}: No {group_label} {device_label} found!", group=group_label)


def success_dict(message, **kwargs):
    """Create a success response dictionary.

    Args:
        message (str): Success message
        **kwargs: Additional fields to include in response

    Returns:
        dict: Success dictionary
    """
    result = {
        "ok": True,
        "status": message
    }
    result.update(kwargs)
    return result


def error_dict(error_type, message, **kwargs):
    """Create an error response dictionary.

    Args:
        error_type (str): Error type
        message (str): Error message
        **kwargs: Additional fields to include in response

    Returns:
        dict: Error dictionary
    """
    result = {
        "ok": False,
        "error": error_type,
        "message": message
    }
    result.update(kwargs)
    return result
