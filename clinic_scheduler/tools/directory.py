"""
Employee directory lookup.

Two implementations share one interface:

* ``MockEmployeeDirectory`` reads a JSON file of employees (the offline
  lookup used in development and tests).
* ``GraphEmployeeDirectory`` queries a Microsoft Graph style ``/users``
  endpoint by employee number.

The scheduling core only calls ``resolve_employee`` and treats ``None`` as
"not found".
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional, Protocol

import requests

from clinic_scheduler.config import DirectoryConfig
from clinic_scheduler.schemas.clinic_schema import Employee
from clinic_scheduler.utils import normalize_employee_number

logger = logging.getLogger(__name__)

DEFAULT_EMPLOYEE_DATA = Path(__file__).resolve().parent.parent / "mock_data" / "employees.json"


class EmployeeDirectory(Protocol):
    """Resolves an employee number to an employee record."""

    def resolve_employee(self, employee_number: str) -> Optional[Employee]:
        ...


def _employee_from_record(record: dict[str, Any]) -> Employee:
    return Employee(
        id=record["id"],
        employee_number=record["employeeNumber"],
        name=record["name"],
        email=record.get("email") or "",
        company_name=record.get("companyName"),
        department=record.get("department"),
        phone_number=record.get("phoneNumber"),
    )


class MockEmployeeDirectory:
    """Offline lookup backed by a JSON file, loaded once and cached."""

    def __init__(self, data_path: Optional[Path] = None) -> None:
        self._data_path = Path(data_path) if data_path else DEFAULT_EMPLOYEE_DATA
        self._employees: Optional[dict[str, Employee]] = None

    def _load(self) -> dict[str, Employee]:
        if self._employees is None:
            raw = json.loads(self._data_path.read_text(encoding="utf-8"))
            self._employees = {
                normalize_employee_number(r["employeeNumber"]): _employee_from_record(r)
                for r in raw
            }
            logger.debug("Loaded %d mock employee(s) from %s", len(self._employees), self._data_path)
        return self._employees

    def resolve_employee(self, employee_number: str) -> Optional[Employee]:
        employee = self._load().get(normalize_employee_number(employee_number))
        if employee is None:
            logger.info("Employee %s not found in mock directory", employee_number)
        return employee


class GraphEmployeeDirectory:
    """Live directory call against a Graph-style ``/users`` endpoint."""

    SELECT_FIELDS = "id,displayName,mail,employeeId,companyName,department,mobilePhone"

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout_seconds: int = 5,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout_seconds
        self._session = session or requests.Session()

    def resolve_employee(self, employee_number: str) -> Optional[Employee]:
        """Look up one employee by number.

        Raises:
            requests.RequestException: If the directory cannot be reached or
                answers with an error status.
        """
        number = normalize_employee_number(employee_number)
        try:
            resp = self._session.get(
                f"{self._base_url}/users",
                params={
                    "$filter": f"employeeId eq '{number}'",
                    "$select": self.SELECT_FIELDS,
                },
                headers={"Authorization": f"Bearer {self._token}"},
                timeout=self._timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            logger.error("Directory lookup for %s failed: %s", number, exc)
            raise

        users = resp.json().get("value", [])
        if not users:
            logger.info("Employee %s not found in directory", number)
            return None

        user = users[0]
        return Employee(
            id=user["id"],
            employee_number=user.get("employeeId") or number,
            name=user.get("displayName") or "",
            email=user.get("mail") or "",
            company_name=user.get("companyName"),
            department=user.get("department"),
            phone_number=user.get("mobilePhone"),
        )


def build_directory(config: DirectoryConfig) -> EmployeeDirectory:
    """Pick the directory implementation from configuration."""
    if config.mock_mode:
        path = Path(config.employee_data_path) if config.employee_data_path else None
        return MockEmployeeDirectory(path)
    return GraphEmployeeDirectory(
        base_url=config.base_url,
        token=config.token,
        timeout_seconds=config.timeout_seconds,
    )
