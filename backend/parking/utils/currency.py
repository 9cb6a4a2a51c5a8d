RUPEE_SYMBOL = "₹"


def _group_indian(digits: str) -> str:
    # Last three digits form one group, the rest are grouped in pairs: 12,34,567
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    pairs = []
    while len(head) > 2:
        pairs.insert(0, head[-2:])
        head = head[:-2]
    if head:
        pairs.insert(0, head)
    return ",".join(pairs + [tail])


def format_price_inr(amount: int) -> str:
    """Render a whole-rupee amount the way en-IN formats INR, e.g. ``₹1,00,000``."""
    sign = "-" if amount < 0 else ""
    return f"{sign}{RUPEE_SYMBOL}{_group_indian(str(abs(int(amount))))}"


def parse_price_inr(text: str) -> int:
    cleaned = text.strip().replace(RUPEE_SYMBOL, "").replace(",", "").replace(" ", "")
    if not cleaned or cleaned == "-":
        raise ValueError(f"not a price: {text!r}")
    return int(cleaned)
