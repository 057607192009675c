"""
Extractors sub-package for vessel-replay.

Contains the dataset-specific extractors that turn a pre-loaded RawDataset
into the TelemetryRecords of one replay cycle.

Design: Strategy Pattern
- base.py defines the BaseExtractor ABC (protocol).
- rows.py implements RowReplayExtractor for tag-mapped row datasets.
- sectioned.py implements SectionedExtractor for min/max logger exports.
- markup.py implements MarkupExtractor for fixed-stride HTML status pages.

Each extractor receives a Layout from the detector (or from the collector
configuration), which supplies its parsing constants.
"""
