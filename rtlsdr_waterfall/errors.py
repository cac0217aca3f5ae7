"""Exception types raised by the acquisition and DSP pipeline."""

from __future__ import annotations

from typing import Optional


class WaterfallError(Exception):
    """Base class for fatal waterfall errors."""

    error_code = "waterfall_error"


class HardwareAcquisitionFailure(WaterfallError):
    """The frame source could not deliver a requested frame."""

    error_code = "hardware_acquisition_failed"

    def __init__(self, message: str, frame_index: Optional[int] = None):
        super().__init__(message)
        self.frame_index = frame_index


class TransformContractViolation(WaterfallError):
    """Reshape or transform dimensions do not match the sweep geometry."""

    error_code = "transform_contract_violation"
