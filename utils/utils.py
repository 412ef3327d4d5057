import re
import time


class Utils:
    @staticmethod
    def byte_length(text: str) -> int:
        # length on the wire, not number of characters
        return len(text.encode("utf-8"))

    @staticmethod
    def parse_port(text: str, default: int = 80) -> int:
        # leading digits only, "8080abc" -> 8080
        match = re.match(r"\s*([+-]?\d+)", text or "")
        if match is None:
            return default

        # 0 falls back to the default as well
        return int(match.group(1)) or default

    @staticmethod
    def parse_header(text: str):
        """ "Name: value" -> ("Name", "value") """
        name, sep, value = text.partition(":")
        if not sep or not name.strip():
            raise ValueError(f"Invalid header {text!r}, expected NAME:VALUE")

        return name.strip(), value.strip()

    @staticmethod
    def get_current_time():
        return time.perf_counter()
