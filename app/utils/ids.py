"""
Short, URL-safe identifiers for uploaded files.

File identifiers appear in every API path, so they are base62 strings rather
than UUIDs or database primary keys.
"""
import secrets
import string

# Base62 character set: [0-9a-zA-Z]
BASE62_CHARS = string.digits + string.ascii_letters

FILE_ID_LENGTH = 12


def b62encode(num: int) -> str:
    """
    Encode a non-negative integer as a base62 string.

    Examples:
        >>> b62encode(12345)
        '3D7'
    """
    if num == 0:
        return BASE62_CHARS[0]

    encoded = []
    while num > 0:
        num, remainder = divmod(num, len(BASE62_CHARS))
        encoded.append(BASE62_CHARS[remainder])

    return "".join(reversed(encoded))


def generate_file_id(length: int = FILE_ID_LENGTH) -> str:
    """
    Generate a random base62 file identifier.

    12 characters carry ~71 bits of entropy. The value is left-padded with
    "0" when the random number encodes to fewer characters.
    """
    # 62**length possible values, drawn uniformly
    num = secrets.randbelow(len(BASE62_CHARS) ** length)
    return b62encode(num).rjust(length, BASE62_CHARS[0])


def stored_filename(file_id: str, original_name: str) -> str:
    """
    Build the storage key for an upload: the file id plus the original
    extension, lowercased.

    Examples:
        >>> stored_filename("a3b8f2d4e1c9", "Q3 Report.XLSX")
        'a3b8f2d4e1c9.xlsx'
    """
    _, dot, extension = original_name.rpartition(".")
    if not dot:
        return file_id
    return f"{file_id}.{extension.lower()}"
