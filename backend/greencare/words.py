"""Amounts in words, Indian grouping (thousand, lakh, crore)."""

ONES = (
    "Zero", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine", "Ten",
    "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen", "Sixteen", "Seventeen", "Eighteen", "Nineteen",
)
TENS = ("", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety")

CRORE = 10_000_000
LAKH = 100_000


def _below_hundred(n: int) -> str:
    if n < 20:
        return ONES[n]
    tens, ones = divmod(n, 10)
    return TENS[tens] if not ones else f"{TENS[tens]} {ONES[ones]}"


def integer_to_words(n: int) -> str:
    if n < 0:
        return "Minus " + integer_to_words(-n)
    if n == 0:
        return ONES[0]
    parts = []
    crore, n = divmod(n, CRORE)
    if crore:
        # beyond 99 crore the crore count is itself spelled out
        parts.append(integer_to_words(crore) + " Crore")
    lakh, n = divmod(n, LAKH)
    if lakh:
        parts.append(_below_hundred(lakh) + " Lakh")
    thousand, n = divmod(n, 1000)
    if thousand:
        parts.append(_below_hundred(thousand) + " Thousand")
    hundred, n = divmod(n, 100)
    if hundred:
        parts.append(ONES[hundred] + " Hundred")
    if n:
        parts.append(_below_hundred(n))
    return " ".join(parts)


def amount_in_words(amount_cents: int, unit: str = "Rupees", subunit: str = "Paise") -> str:
    sign = "Minus " if amount_cents < 0 else ""
    whole, fraction = divmod(abs(int(amount_cents)), 100)
    text = f"{sign}{unit} {integer_to_words(whole)}"
    if fraction:
        text += f" and {_below_hundred(fraction)} {subunit}"
    return text + " Only"
