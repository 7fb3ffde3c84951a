import os
from dataclasses import dataclass, field
from typing import Any, Optional

from xcscrape.constants import DescriptorKind


@dataclass(frozen=True)
class TestDescriptor:
    """Identity of one suite or case reported by the runner."""
    id: Any
    kind: DescriptorKind
    suite_name: str
    case_name: Optional[str] = None

    @classmethod
    def suite(cls, test_id: Any, suite_name: str) -> "TestDescriptor":
        return cls(id=test_id, kind=DescriptorKind.SUITE, suite_name=suite_name)

    @classmethod
    def case(cls, test_id: Any, suite_name: str, case_name: str) -> "TestDescriptor":
        return cls(
            id=test_id,
            kind=DescriptorKind.CASE,
            suite_name=suite_name,
            case_name=case_name,
        )

    @property
    def is_case(self) -> bool:
        return self.kind is DescriptorKind.CASE

    @property
    def class_name(self) -> str:
        return self.suite_name

    @property
    def name(self) -> str:
        return self.case_name if self.is_case else self.suite_name

    @property
    def display_name(self) -> str:
        if self.is_case:
            return f"{self.suite_name}.{self.case_name}"
        return self.suite_name


@dataclass
class ContextFrame:
    """An open suite or case plus the failure messages collected for it."""
    descriptor: TestDescriptor
    messages: list[str] = field(default_factory=list)

    def add_message(self, message: str) -> None:
        self.messages.append(message)

    def matches(self, suite_name: str, case_name: str) -> bool:
        return (
            self.descriptor.is_case
            and self.descriptor.class_name == suite_name
            and self.descriptor.name == case_name
        )

    def failure_detail(self) -> str:
        return os.linesep.join(self.messages)
