# loyalty/luhn.py
def validate_luhn(number: str) -> bool:
    """True when number is a non-empty ASCII digit string passing the Luhn checksum."""
    if not number or not number.isascii() or not number.isdigit():
        return False

    total = 0
    parity = len(number) % 2
    for i, ch in enumerate(number):
        digit = ord(ch) - 48
        if i % 2 == parity:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0
