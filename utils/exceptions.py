"""Custom exception hierarchy for the Warden bot.

This module defines a hierarchy of custom exceptions for standardized error handling
throughout the bot. These exceptions are raised by the report pipeline, the
repositories and the moderation helpers, and are rendered for the user by
``utils.error_handling.handle_interaction_errors``.
"""


class WardenError(Exception):
    """Base exception for all bot errors."""

    def __init__(self, message: str = "An error occurred", *args, **kwargs) -> None:
        self.message = message
        super().__init__(message, *args, **kwargs)


# Input Validation Errors


class UserInputError(WardenError):
    """Errors caused by invalid user input."""

    def __init__(self, message: str = "Invalid user input", *args, **kwargs) -> None:
        super().__init__(message, *args, **kwargs)


class ValidationError(UserInputError):
    """Errors caused by input validation failures."""

    def __init__(self, field: str = None, message: str = None, *args, **kwargs) -> None:
        self.field = field
        if field and not message:
            message = f"Invalid value for {field}"
        elif not message:
            message = "Validation failed"
        super().__init__(message, *args, **kwargs)


class AttachmentError(ValidationError):
    """An uploaded attachment was rejected (size, type or dimensions)."""

    def __init__(self, filename: str = None, message: str = None, *args, **kwargs) -> None:
        self.filename = filename
        if filename and message:
            message = f"{filename}: {message}"
        elif filename:
            message = f"{filename} is not a valid screenshot"
        super().__init__("attachment", message, *args, **kwargs)


# External Service Errors


class ExternalServiceError(WardenError):
    """Errors from external services (malware scanner, VPN lookup, Discord)."""

    def __init__(
        self,
        service_name: str = "external service",
        message: str = None,
        *args,
        **kwargs,
    ) -> None:
        self.service_name = service_name
        if message is None:
            message = f"Error communicating with {service_name}"
        super().__init__(message, *args, **kwargs)


class ServiceUnavailableError(ExternalServiceError):
    """Errors when an external service is unavailable."""

    def __init__(
        self,
        service_name: str = "external service",
        message: str = None,
        *args,
        **kwargs,
    ) -> None:
        if not message:
            message = f"{service_name} is currently unavailable"
        super().__init__(service_name, message, *args, **kwargs)


class MalwareDetectedError(ExternalServiceError):
    """The malware scanner flagged an uploaded file."""

    def __init__(self, filename: str, positives: int = 0, *args, **kwargs) -> None:
        self.filename = filename
        self.positives = positives
        message = f"File {filename} was flagged as potentially malicious"
        super().__init__("malware scanner", message, *args, **kwargs)


# Permission Errors


class PermissionError(WardenError):
    """Errors related to permissions."""

    def __init__(
        self,
        message: str = "You don't have permission to perform this action",
        *args,
        **kwargs,
    ) -> None:
        super().__init__(message, *args, **kwargs)


class RolePermissionError(PermissionError):
    """The invoking member is below the tier a command requires."""

    def __init__(self, required_tier: str = None, message: str = None, *args, **kwargs) -> None:
        self.required_tier = required_tier
        if required_tier and not message:
            message = f"This command requires the {required_tier} tier"
        elif not message:
            message = "You don't have the required role for this command"
        super().__init__(message, *args, **kwargs)


# Resource Errors


class ResourceNotFoundError(WardenError):
    """Errors when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str = "resource",
        resource_id: str = None,
        message: str = None,
        *args,
        **kwargs,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        if not message:
            if resource_id:
                message = f"{resource_type.capitalize()} not found with ID {resource_id}"
            else:
                message = f"{resource_type.capitalize()} not found"
        super().__init__(message, *args, **kwargs)


# Configuration Errors


class ConfigurationError(WardenError):
    """Errors related to bot configuration."""

    def __init__(self, message: str = "Configuration error", *args, **kwargs) -> None:
        super().__init__(message, *args, **kwargs)


class MissingConfigurationError(ConfigurationError):
    """Errors when a required configuration value is missing."""

    def __init__(self, config_key: str = None, message: str = None, *args, **kwargs) -> None:
        self.config_key = config_key
        if config_key and not message:
            message = f"{config_key} is not configured"
        elif not message:
            message = "Required configuration is missing"
        super().__init__(message, *args, **kwargs)


# Database Errors


class DatabaseError(WardenError):
    """Errors related to database operations."""

    def __init__(self, message: str = "Database error", *args, **kwargs) -> None:
        super().__init__(message, *args, **kwargs)


class QueryError(DatabaseError):
    """Errors when a database query fails."""

    def __init__(self, query: str = None, message: str = None, *args, **kwargs) -> None:
        self.query = query
        if not message:
            message = f"Database query failed: {query}" if query else "Database query failed"
        super().__init__(message, *args, **kwargs)


class ConnectionError(DatabaseError):
    """Errors when connecting to the database."""

    def __init__(self, message: str = "Failed to connect to database", *args, **kwargs) -> None:
        super().__init__(message, *args, **kwargs)


# Discord Errors


class DiscordActionError(ExternalServiceError):
    """A Discord API call that carries out a moderation action failed."""

    def __init__(self, action: str, message: str = None, code: int = None, *args, **kwargs) -> None:
        self.action = action
        self.code = code
        if not message:
            message = f"Failed to {action}"
        super().__init__("Discord", message, *args, **kwargs)
