"""Display formatting for the detail overlay."""


def format_number(num):
    """Format with Indian digit grouping (12,34,567)."""
    if not num:
        return '0'
    sign = '-' if num < 0 else ''
    digits = str(abs(int(num)))
    if len(digits) <= 3:
        return sign + digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return sign + ','.join(groups + [tail])


def format_margin(margin):
    if not margin:
        return 'N/A'
    return f"Margin: {format_number(margin)} votes"


def format_turnout(turnout):
    if not turnout:
        return 'N/A'
    return f"Turnout: {turnout:.2f}%"


def format_vote_share(vote_share):
    if not vote_share:
        return '0%'
    return f"{vote_share:.2f}%"
