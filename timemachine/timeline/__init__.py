"""Timeline module — bucketing, aggregation, merging and windowing.

Turns independently-timestamped source series into one ordered list of
TimelinePoint objects and slices it into newest-first pages.
"""

from __future__ import annotations
