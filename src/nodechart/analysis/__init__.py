"""Series transforms (sentinels, grouping, resampling, peaks, gap filling).

Every module here is a pure function over immutable rows with no threads or
I/O. :mod:`grouping`, :mod:`resample`, :mod:`peaks` and :mod:`interpolate`
are chained by :mod:`nodechart.core.pipeline`.
"""
