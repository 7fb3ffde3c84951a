from enum import Enum


class TestStatus(str, Enum):
    PASSED = "PASSED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"
    ERROR = "ERROR"


class ResultType(str, Enum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"


class Destination(str, Enum):
    STDOUT = "STDOUT"
    STDERR = "STDERR"


class DescriptorKind(str, Enum):
    SUITE = "SUITE"
    CASE = "CASE"


RESULT_TO_STATUS = {
    ResultType.SUCCESS: TestStatus.PASSED,
    ResultType.FAILURE: TestStatus.FAILED,
}
