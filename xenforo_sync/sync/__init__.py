from .crawler import XenforoCrawler
from .downloader import MediaDownloader
from .progress import JobReporter, MultiProgress, NullProgress, ProgressSink, RichProgress, reporting
from .reconcile import Reconciled, Reconciler

__all__ = [
    "JobReporter",
    "MediaDownloader",
    "MultiProgress",
    "NullProgress",
    "ProgressSink",
    "Reconciled",
    "Reconciler",
    "RichProgress",
    "XenforoCrawler",
    "reporting",
]
