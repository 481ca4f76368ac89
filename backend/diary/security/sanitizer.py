"""
Input sanitization for free-text fields and upload filenames.

Rejects:
- Null bytes
- Control characters (except newlines/tabs in multi-line text)
- Path traversal (../ sequences) in single-line fields
- XSS payloads (basic detection)
"""
import re
from typing import Optional


class InputSanitizer:
    """Validates and sanitizes user input."""

    NULL_BYTE_PATTERN = re.compile(r'\x00')
    CONTROL_CHAR_PATTERN = re.compile(r'[\x00-\x08\x0b-\x0c\x0e-\x1f\x7f]')  # Except \t=0x09, \n=0x0a, \r=0x0d
    PATH_TRAVERSAL_PATTERN = re.compile(r'\.\.[/\\]')
    SCRIPT_PATTERN = re.compile(r'<script|javascript:|onerror|onclick|<iframe|<embed', re.IGNORECASE)

    ALLOWED_IMAGE_TYPES = {
        'image/jpeg',
        'image/jpg',
        'image/png',
        'image/gif',
        'image/webp',
        'image/bmp',
        'image/svg+xml',
        'image/tiff',
        'image/tif',
    }

    @staticmethod
    def sanitize_string(value: str, max_length: Optional[int] = None, allow_newlines: bool = False) -> str:
        """
        Sanitize string input.

        Args:
            value: Input string
            max_length: Optional max length after sanitization
            allow_newlines: Allow \\n and \\r characters (letters, comments)

        Returns:
            Sanitized string

        Raises:
            ValueError: If input contains dangerous patterns
        """
        if not isinstance(value, str):
            raise ValueError("Input must be string")

        if InputSanitizer.NULL_BYTE_PATTERN.search(value):
            raise ValueError("Null bytes not allowed")

        if InputSanitizer.CONTROL_CHAR_PATTERN.search(value):
            raise ValueError("Control characters not allowed")

        if not allow_newlines:
            if '\n' in value or '\r' in value:
                raise ValueError("Line breaks not allowed here")
            if InputSanitizer.PATH_TRAVERSAL_PATTERN.search(value):
                raise ValueError("Path traversal patterns not allowed")

        if InputSanitizer.SCRIPT_PATTERN.search(value):
            raise ValueError("Script/XSS patterns not allowed")

        if max_length and len(value) > max_length:
            raise ValueError(f"Input exceeds max length of {max_length}")

        return value

    @staticmethod
    def sanitize_subject(value: str, max_length: int = 100) -> str:
        """Single-line titles (letters, countdown events)."""
        return InputSanitizer.sanitize_string(value, max_length=max_length, allow_newlines=False).strip()

    @staticmethod
    def sanitize_body(value: str, max_length: int = 2000) -> str:
        """Multi-line text: letters, memory descriptions, comments."""
        sanitized = InputSanitizer.sanitize_string(value, max_length=max_length, allow_newlines=True)

        # trim trailing whitespace per line, keep the structure
        lines = sanitized.split('\n')
        lines = [line.rstrip() for line in lines]
        return '\n'.join(lines).strip()

    @staticmethod
    def sanitize_filename(filename: str) -> str:
        """Prevent path traversal in filenames."""
        if not filename or len(filename) > 255:
            raise ValueError("Invalid filename length")

        filename = filename.replace('\\', '/').split('/')[-1]

        if '..' in filename:
            raise ValueError("Path traversal not allowed")

        # Allow alphanumeric, dot, dash, underscore, space, parentheses
        filename = re.sub(r'[^a-zA-Z0-9._\-() ]', '', filename)
        filename = re.sub(r'[ ]{2,}', ' ', filename)
        filename = re.sub(r'[.]{2,}', '.', filename)

        if not filename:
            raise ValueError("Filename becomes empty after sanitization")

        return filename

    @staticmethod
    def file_extension(filename: Optional[str], default: str) -> str:
        """Lower-case extension of a sanitized filename, or ``default``."""
        if not filename:
            return default
        try:
            clean = InputSanitizer.sanitize_filename(filename)
        except ValueError:
            return default
        if '.' not in clean:
            return default
        ext = clean.rsplit('.', 1)[-1].lower()
        return ext if re.fullmatch(r'[a-z0-9]{1,8}', ext) else default

    @staticmethod
    def validate_image_type(mime_type: Optional[str]) -> bool:
        """Validate an uploaded image's MIME type against the whitelist."""
        if not mime_type:
            return False
        base_type = mime_type.split(';')[0].strip().lower()
        return base_type in InputSanitizer.ALLOWED_IMAGE_TYPES

    @staticmethod
    def validate_audio_type(mime_type: Optional[str]) -> bool:
        if not mime_type:
            return False
        return mime_type.split(';')[0].strip().lower().startswith('audio/')
