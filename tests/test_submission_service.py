from datetime import datetime, timedelta
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from contesto.models.submission import SubmissionCreate, SubmissionUpdate
from contesto.services.contest.submission import SubmissionService
from conftest import contest_doc


def entry(contest, value="https://example.com/my-entry"):
    return SubmissionCreate(contestId=str(contest["_id"]), submissionValue=value)


async def test_submission_requires_open_contest(mock_db):
    contest = contest_doc(status="pending", contestStatus=None)
    mock_db.contests.find_one.return_value = contest

    success, message, _, status = await SubmissionService(mock_db).create_submission(entry(contest), "user@example.com")

    assert (success, status) == (False, 403)
    assert message == "Contest is not open for submissions"


async def test_submission_rejected_after_deadline(mock_db):
    contest = contest_doc(participationEndAt=datetime.utcnow() - timedelta(minutes=1))
    mock_db.contests.find_one.return_value = contest

    result = await SubmissionService(mock_db).create_submission(entry(contest), "user@example.com")

    assert result[3] == 403


async def test_submission_requires_participation(mock_db):
    contest = contest_doc()
    mock_db.contests.find_one.return_value = contest
    mock_db.participants.find_one.return_value = None

    success, message, _, status = await SubmissionService(mock_db).create_submission(entry(contest), "user@example.com")

    assert (success, status) == (False, 403)
    assert message == "Only participants can submit"
    mock_db.submissions.insert_one.assert_not_called()


async def test_duplicate_submission_conflicts(mock_db):
    contest = contest_doc()
    mock_db.contests.find_one.return_value = contest
    mock_db.participants.find_one.return_value = {"contestId": str(contest["_id"]), "userEmail": "user@example.com"}
    mock_db.submissions.insert_one.side_effect = DuplicateKeyError("dup")

    result = await SubmissionService(mock_db).create_submission(entry(contest), "user@example.com")

    assert result[3] == 409


async def test_submission_created_pending(mock_db):
    contest = contest_doc()
    mock_db.contests.find_one.return_value = contest
    mock_db.participants.find_one.return_value = {"contestId": str(contest["_id"]), "userEmail": "user@example.com"}

    success, _, submission, status = await SubmissionService(mock_db).create_submission(entry(contest), "user@example.com")

    assert (success, status) == (True, 201)
    assert submission["status"] == "pending"
    assert submission["contestId"] == str(contest["_id"])
    assert submission["submittedAt"] == submission["updatedAt"]


async def test_submission_unknown_contest(mock_db):
    result = await SubmissionService(mock_db).create_submission(
        SubmissionCreate(contestId=str(ObjectId()), submissionValue="x"), "user@example.com"
    )

    assert result[3] == 404


async def test_update_only_own_submission(mock_db):
    mock_db.submissions.find_one.return_value = {
        "_id": ObjectId(), "userEmail": "other@example.com", "status": "pending", "contestId": str(ObjectId())
    }

    result = await SubmissionService(mock_db).update_submission(
        str(ObjectId()), "user@example.com", SubmissionUpdate(submissionValue="new")
    )

    assert result[3] == 403


async def test_update_locked_after_result(mock_db):
    mock_db.submissions.find_one.return_value = {
        "_id": ObjectId(), "userEmail": "user@example.com", "status": "lost", "contestId": str(ObjectId())
    }

    result = await SubmissionService(mock_db).update_submission(
        str(ObjectId()), "user@example.com", SubmissionUpdate(submissionValue="new")
    )

    assert result[3] == 409


async def test_update_pending_submission(mock_db):
    contest = contest_doc()
    submission = {"_id": ObjectId(), "userEmail": "user@example.com", "status": "pending", "contestId": str(contest["_id"])}
    mock_db.submissions.find_one.return_value = submission
    mock_db.contests.find_one.return_value = contest
    mock_db.submissions.find_one_and_update.return_value = {**submission, "submissionValue": "new"}

    success, _, updated, _ = await SubmissionService(mock_db).update_submission(
        str(submission["_id"]), "user@example.com", SubmissionUpdate(submissionValue="new")
    )

    assert success is True
    assert updated["submissionValue"] == "new"


async def test_creator_listing_joins_user_profile(mock_db):
    await SubmissionService(mock_db).get_contest_submissions("abc")

    pipeline = mock_db.submissions.aggregate.call_args.args[0]
    assert pipeline[0] == {"$match": {"contestId": "abc"}}
    lookup = next(stage["$lookup"] for stage in pipeline if "$lookup" in stage)
    assert lookup["from"] == "users"
    assert lookup["localField"] == "userEmail"
