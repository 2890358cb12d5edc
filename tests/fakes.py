from __future__ import annotations

import fnmatch
import itertools
from collections import defaultdict
from datetime import date, timedelta
from typing import Any, AsyncIterator

from api.models.exam_session import ExamType
from api.services.hubspot import HubSpotNotFoundError
from api.settings import settings


OBJECT_NAMES = {settings.contacts_object: "contacts", settings.notes_object: "notes"}


class FakeHubSpot:
    """
    In-memory stand-in for `HubSpotClient`.

    Like the real v4 association endpoints, batch association reads return numeric object ids.
    `fail(method)` makes the next call(s) of a method raise.
    """

    def __init__(self) -> None:
        self.objects: dict[str, dict[str, dict[str, str]]] = defaultdict(dict)
        self.edges: set[tuple[str, str, str, str]] = set()
        self.calls: list[tuple[str, Any]] = []
        self.failures: dict[str, list[Exception]] = defaultdict(list)
        self._ids = itertools.count(1001)

    # test helpers

    def fail(self, method: str, exc: Exception | None = None, times: int = 1) -> None:
        self.failures[method].extend([exc or RuntimeError(f"{method} failed")] * times)

    def add(self, object_type: str, properties: dict[str, Any], object_id: str | None = None) -> str:
        object_id = object_id or str(next(self._ids))
        self.objects[object_type][object_id] = {k: str(v) for k, v in properties.items() if v is not None}
        return object_id

    def link(self, from_type: str, from_id: str, to_type: str, to_id: str) -> None:
        self.edges.add((from_type, str(from_id), to_type, str(to_id)))
        self.edges.add((to_type, str(to_id), from_type, str(from_id)))

    def add_contact(
        self,
        student_id: str = "STU123",
        email: str = "student@example.com",
        sj: int = 0,
        cs: int = 0,
        mini: int = 0,
        shared: int = 0,
        contact_id: str | None = None,
    ) -> str:
        return self.add(
            settings.contacts_object,
            {
                "student_id": student_id,
                "email": email,
                "firstname": "Jane",
                "lastname": "Doe",
                "sj_credits": sj,
                "cs_credits": cs,
                "sjmini_credits": mini,
                "shared_mock_credits": shared,
            },
            contact_id,
        )

    def add_session(
        self,
        exam_type: ExamType = ExamType.CLINICAL_SKILLS,
        exam_date: date | None = None,
        capacity: int = 10,
        booked: int = 0,
        active: bool = True,
        location: str | None = "Mississauga",
    ) -> str:
        exam_date = exam_date or date.today() + timedelta(days=14)
        return self.add(
            settings.exam_sessions_object,
            {
                "mock_type": exam_type.value,
                "exam_date": exam_date.isoformat(),
                "capacity": capacity,
                "total_bookings": booked,
                "is_active": str(active).lower(),
                "location": location,
            },
        )

    def add_booking(
        self,
        contact_id: str,
        session_id: str,
        exam_type: ExamType = ExamType.CLINICAL_SKILLS,
        credit_type: str | None = "specific",
        status: str = "Scheduled",
        name: str = "Jane Doe",
    ) -> str:
        booking_id = self.add(
            settings.bookings_object,
            {
                "booking_id": f"{exam_type.value}-{name} - 2030-01-01",
                "name": name,
                "email": "student@example.com",
                "student_id": "STU123",
                "mock_type": exam_type.value,
                "mock_exam_id": session_id,
                "credit_type": credit_type,
                "status": status,
                "is_active": "Cancelled" if status == "Cancelled" else "Active",
            },
        )
        self.link(settings.bookings_object, booking_id, settings.contacts_object, contact_id)
        self.link(settings.bookings_object, booking_id, settings.exam_sessions_object, session_id)
        return booking_id

    def props(self, object_type: str, object_id: str) -> dict[str, str]:
        return self.objects[object_type][object_id]

    def linked(self, from_type: str, from_id: str, to_type: str) -> list[str]:
        return sorted(t for f, i, tt, t in self.edges if (f, i, tt) == (from_type, str(from_id), to_type))

    # HubSpotClient interface

    def _call(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))
        if self.failures[method]:
            raise self.failures[method].pop(0)

    async def aclose(self) -> None:
        pass

    async def get_object(
        self, object_type: str, object_id: str, properties: list[str], associations: list[str] | None = None
    ) -> dict[str, Any] | None:
        self._call("get_object", object_type, object_id)
        if (props := self.objects[object_type].get(str(object_id))) is None:
            return None

        out: dict[str, Any] = {"id": str(object_id), "properties": dict(props)}
        if associations:
            out["associations"] = {
                OBJECT_NAMES.get(to_type, to_type): {
                    "results": [{"id": i, "type": "booking_to_x"} for i in self.linked(object_type, object_id, to_type)]
                }
                for to_type in associations
                if self.linked(object_type, object_id, to_type)
            }
        return out

    async def create_object(
        self, object_type: str, properties: dict[str, str], associations: list[dict[str, Any]] | None = None
    ) -> dict[str, Any]:
        self._call("create_object", object_type, properties)
        object_id = self.add(object_type, properties)
        for association in associations or []:
            self.link(object_type, object_id, settings.contacts_object, association["to"]["id"])
        return {"id": object_id, "properties": dict(properties)}

    async def update_object(self, object_type: str, object_id: str, properties: dict[str, str]) -> dict[str, Any]:
        self._call("update_object", object_type, object_id, properties)
        if object_id not in self.objects[object_type]:
            raise HubSpotNotFoundError("Object not found", 404)
        self.objects[object_type][object_id].update(properties)
        return {"id": object_id, "properties": dict(self.objects[object_type][object_id])}

    async def archive_object(self, object_type: str, object_id: str) -> None:
        self._call("archive_object", object_type, object_id)
        self.objects[object_type].pop(object_id, None)
        self.edges = {
            e for e in self.edges if (object_type, object_id) not in ((e[0], e[1]), (e[2], e[3]))
        }

    async def search_objects(
        self,
        object_type: str,
        filters: list[dict[str, Any]],
        properties: list[str],
        sorts: list[dict[str, str]] | None = None,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        self._call("search_objects", object_type, filters)
        out = [
            {"id": object_id, "properties": dict(props)}
            for object_id, props in self.objects[object_type].items()
            if all(props.get(f["propertyName"]) == f["value"] for f in filters)
        ]
        for sort in sorts or []:
            out.sort(key=lambda o: o["properties"].get(sort["propertyName"], ""))
        return out[:limit]

    async def batch_read_objects(self, object_type: str, ids: list[str], properties: list[str]) -> list[dict[str, Any]]:
        self._call("batch_read_objects", object_type, ids)
        return [
            {"id": i, "properties": dict(self.objects[object_type][i])} for i in ids if i in self.objects[object_type]
        ]

    async def batch_update_objects(self, object_type: str, inputs: list[dict[str, Any]]) -> list[dict[str, Any]]:
        self._call("batch_update_objects", object_type, inputs)
        out = []
        for item in inputs:
            if item["id"] in self.objects[object_type]:
                self.objects[object_type][item["id"]].update(item["properties"])
                out.append({"id": item["id"], "properties": dict(self.objects[object_type][item["id"]])})
        return out

    async def batch_read_associations(self, from_type: str, ids: list[str], to_type: str) -> list[dict[str, Any]]:
        self._call("batch_read_associations", from_type, ids, to_type)
        out = []
        for i in ids:
            if linked := self.linked(from_type, i, to_type):
                out.append(
                    {
                        "from": {"id": i},
                        "to": [
                            {"toObjectId": int(t) if t.isdigit() else t, "associationTypes": [{"typeId": 1}]}
                            for t in linked
                        ],
                    }
                )
        return out

    async def batch_create_associations(
        self, from_type: str, to_type: str, inputs: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        self._call("batch_create_associations", from_type, to_type, inputs)
        for item in inputs:
            self.link(from_type, item["from"]["id"], to_type, item["to"]["id"])
        return [{"from": item["from"], "to": item["to"]} for item in inputs]

    async def batch_archive_associations(self, from_type: str, to_type: str, inputs: list[dict[str, Any]]) -> None:
        self._call("batch_archive_associations", from_type, to_type, inputs)
        for item in inputs:
            for to in item["to"]:
                self.edges.discard((from_type, item["from"]["id"], to_type, to["id"]))
                self.edges.discard((to_type, to["id"], from_type, item["from"]["id"]))


class FakeRedis:
    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def setex(self, key: str, ttl: int, value: str | bytes) -> None:
        self.data[key] = value.decode() if isinstance(value, bytes) else value

    async def delete(self, *keys: str) -> None:
        for key in keys:
            self.data.pop(key, None)

    async def scan_iter(self, match: str) -> AsyncIterator[str]:
        for key in list(self.data):
            if fnmatch.fnmatch(key, match):
                yield key
