"""Client-side patient record handling and complete-analysis fan-out."""

from heart_gateway.client.aggregator import AggregateResult, PairError, run_complete_analysis, run_single_prediction
from heart_gateway.client.gateway_client import GatewayCallError, GatewayClient, PredictionResult
from heart_gateway.client.patient_record import PATIENT_FIELDS, PatientRecordError, prepare_patient_record

__all__ = [
    "AggregateResult",
    "GatewayCallError",
    "GatewayClient",
    "PATIENT_FIELDS",
    "PairError",
    "PatientRecordError",
    "PredictionResult",
    "prepare_patient_record",
    "run_complete_analysis",
    "run_single_prediction",
]
