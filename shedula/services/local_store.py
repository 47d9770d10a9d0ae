# shedula/services/local_store.py
# Collections persisted as one JSON array under a fixed storage key.
# Every mutation rewrites the whole array; two processes sharing a key race
# and the last writer wins.
import json
import logging
import threading
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import ValidationError

from .. import schemas
from ..models import AppointmentStatus
from ..storage import KeyValueStorage

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=schemas.BaseSchema)


class JSONCollectionStore(Generic[RecordT]):
    schema: Type[RecordT]
    id_field: str = "id"
    default_key: str = ""

    def __init__(self, storage: KeyValueStorage, key: Optional[str] = None):
        self.storage = storage
        self.key = key or self.default_key
        # Re-entrant so a service can hold it across several store calls
        self.lock = threading.RLock()

    @property
    def _id_alias(self) -> str:
        return self._alias(self.id_field)

    def _alias(self, name: str) -> str:
        field = self.schema.model_fields.get(name)
        if field is None:
            return name
        return field.alias or name

    # --- raw blob access ---
    def _read_raw(self) -> List[Dict[str, Any]]:
        if not self.storage.available:
            return []
        blob = self.storage.get(self.key)
        if not blob:
            return []
        try:
            data = json.loads(blob)
        except json.JSONDecodeError as e:
            logger.error(f"Discarding unreadable collection '{self.key}': {e}")
            return []
        if not isinstance(data, list):
            logger.error(f"Collection '{self.key}' is not a JSON array; treating as empty")
            return []
        return [item for item in data if isinstance(item, dict)]

    def _write_raw(self, records: List[Dict[str, Any]]) -> None:
        if not self.storage.available:
            return
        self.storage.set(self.key, json.dumps(records))

    def _parse(self, raw: Dict[str, Any]) -> Optional[RecordT]:
        try:
            return self.schema.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Skipping malformed record in '{self.key}': {e.error_count()} validation error(s)")
            return None

    # --- public operations ---
    def list(self) -> List[RecordT]:
        with self.lock:
            parsed = (self._parse(raw) for raw in self._read_raw())
            return [record for record in parsed if record is not None]

    def get(self, record_id: str) -> Optional[RecordT]:
        for record in self.list():
            if getattr(record, self.id_field) == record_id:
                return record
        return None

    def create(self, record: RecordT) -> None:
        """Append one record. Ids are caller-supplied and not checked for uniqueness."""
        with self.lock:
            records = self._read_raw()
            records.append(record.to_document())
            self._write_raw(records)

    def update_fields(self, record_id: str, **fields: Any) -> bool:
        """
        Shallow-merge `fields` (snake_case names or camelCase aliases) into the
        record with this id. Unknown ids are a no-op; returns whether a record changed.
        """
        with self.lock:
            records = self._read_raw()
            updates = {self._alias(name): value for name, value in fields.items()}
            updates.pop(self._id_alias, None)
            for index, raw in enumerate(records):
                if raw.get(self._id_alias) != record_id:
                    continue
                try:
                    merged = self.schema.model_validate({**raw, **updates})
                except ValidationError as e:
                    logger.warning(f"Not updating malformed record '{record_id}' in '{self.key}': "
                                   f"{e.error_count()} validation error(s)")
                    return False
                records[index] = merged.to_document()
                self._write_raw(records)
                return True
            return False

    def remove(self, record_id: str) -> bool:
        with self.lock:
            records = self._read_raw()
            remaining = [raw for raw in records if raw.get(self._id_alias) != record_id]
            if len(remaining) == len(records):
                return False
            self._write_raw(remaining)
            return True


class AppointmentStore(JSONCollectionStore[schemas.Appointment]):
    schema = schemas.Appointment
    id_field = "id"
    default_key = "shedula_appointments"

    def update_status(self, appointment_id: str, status: AppointmentStatus) -> bool:
        """No transition legality check; any status may overwrite any other."""
        return self.update_fields(appointment_id, status=AppointmentStatus(status))


class MedicineOrderStore(JSONCollectionStore[schemas.MedicineOrder]):
    schema = schemas.MedicineOrder
    id_field = "order_id"
    default_key = "shedula_medicine_orders"
