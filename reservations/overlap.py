from sqlalchemy import and_


def overlaps(existing_start, existing_end, candidate_start, candidate_end) -> bool:
    """
    True when [existing_start, existing_end) and [candidate_start, candidate_end)
    share at least one instant. Back-to-back ranges do not overlap.

    Both ranges must already be validated (start strictly before end).
    """
    return existing_start < candidate_end and existing_end > candidate_start


def overlap_filter(start_col, end_col, candidate_start, candidate_end):
    """Same rule as overlaps(), as a SQL clause over stored columns."""
    return and_(start_col < candidate_end, end_col > candidate_start)
