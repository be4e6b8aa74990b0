def string_to_hex(text: str) -> str:
    """Upper-case hex of the UTF-8 bytes of `text`, as XRPL memo fields expect."""
    return text.encode("utf-8").hex().upper()
