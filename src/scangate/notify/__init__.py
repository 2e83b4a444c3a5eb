"""Downstream forwarders — job record, chat alert, tracker upload."""

from scangate.notify.chat import ChatWebhook
from scangate.notify.dispatch import DispatchSummary, dispatch
from scangate.notify.tracker import DefectDojoUploader

__all__ = ["ChatWebhook", "DefectDojoUploader", "DispatchSummary", "dispatch"]
