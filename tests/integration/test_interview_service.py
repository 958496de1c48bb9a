import asyncio

import pytest

from mockprep.core.cache import QueryCache
from mockprep.errors import ValidationError
from mockprep.services.interviews import InterviewService


def test_create_and_list_interviews_newest_first(remote, account) -> None:
    service = InterviewService(account, remote, cache=QueryCache())

    async def scenario():
        await service.create({"job_description": "Platform engineer", "difficulty": "easy", "num_questions": 6})
        await service.list_interviews()
        await service.create({"job_description": "Data scientist", "difficulty": "difficult", "num_questions": 15})
        return await service.list_interviews()

    interviews = asyncio.run(scenario())
    assert [item.job_description for item in interviews] == ["Data scientist", "Platform engineer"]
    assert [item.job_description for item in service.interviews] == ["Data scientist", "Platform engineer"]


def test_create_requires_job_description(remote, account) -> None:
    service = InterviewService(account, remote, cache=QueryCache())
    with pytest.raises(ValidationError) as info:
        asyncio.run(service.create({"job_description": "", "num_questions": 10}))
    assert info.value.fields == ["job_description"]
