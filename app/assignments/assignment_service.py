import logging
from typing import List, Optional

from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from app.assignments.assignment_schemas import AssignmentCreate, AssignmentUpdate
from app.core.database import clean_fields, serialize_doc, to_object_id, utcnow
from app.core.errors import Conflict, GatewayError, NotFound
from app.courses import course_service
from app.uploads.upload_service import get_public_id

logger = logging.getLogger(__name__)

DUPLICATE_TITLE = "An assignment with this title already exists in this module"

# ==================== HELPERS ====================

def _attachments(items: list) -> List[dict]:
    """Fill in the provider public id from the URL where the client omitted it"""
    results = []
    for item in items:
        item = dict(item)
        item["public_id"] = item.get("public_id") or get_public_id(item.get("url"))
        results.append(item)
    return results

def _attachment_id(attachment: dict) -> Optional[str]:
    return attachment.get("public_id") or get_public_id(attachment.get("url"))

async def _purge_attachments(uploader, attachments: list) -> None:
    """Best-effort provider clean-up; failures are logged only"""
    for attachment in attachments:
        public_id = _attachment_id(attachment)
        if not public_id:
            continue
        try:
            deleted = await uploader.delete(public_id)
        except Exception as e:
            logger.error(f"❌ Failed to delete attachment {public_id}: {e}")
            continue
        if not deleted:
            logger.warning(f"⚠️ Upload provider kept attachment {public_id}")

async def load_assignment(db, assignment_id: str) -> dict:
    assignment = await db.assignments.find_one({
        "_id": to_object_id(assignment_id, "assignment ID")
    })
    if not assignment:
        raise NotFound("Assignment not found")
    return assignment

async def _ensure_linkage(db, course_id: ObjectId, module_id: ObjectId) -> dict:
    course = await db.courses.find_one({"_id": course_id}, {"title": 1, "modules": 1})
    if not course:
        raise NotFound("Course not found")
    if not course_service.find_module(course, str(module_id)):
        raise NotFound("Module not found")
    return course

async def _ensure_title_available(
    db,
    course_id: ObjectId,
    module_id: ObjectId,
    title: str,
    exclude_id: Optional[ObjectId] = None
) -> None:
    query = {"course_id": course_id, "module_id": module_id, "title": title}
    if exclude_id is not None:
        query["_id"] = {"$ne": exclude_id}
    if await db.assignments.find_one(query, {"_id": 1}):
        raise Conflict(DUPLICATE_TITLE)

async def _with_titles(db, assignments: list) -> List[dict]:
    course_ids = list({a["course_id"] for a in assignments})
    titles = await course_service.get_titles(db, course_ids)

    results = []
    for assignment in assignments:
        view = serialize_doc(assignment)
        course = titles.get(view["course_id"], {})
        view["course_title"] = course.get("title")
        view["module_title"] = course.get("modules", {}).get(view["module_id"])
        results.append(view)
    return results

# ==================== CRUD ====================

async def create_assignment(db, data: AssignmentCreate, creator_id: ObjectId) -> dict:
    """
    Raises:
        404: Course or module does not exist
        409: Title already used in the same module
    """
    course_id = to_object_id(data.course_id, "course ID")
    module_id = to_object_id(data.module_id, "module ID")

    await _ensure_linkage(db, course_id, module_id)
    await _ensure_title_available(db, course_id, module_id, data.title)

    now = utcnow()
    assignment = {
        **clean_fields(data.dict(exclude={"attachments"})),
        "course_id": course_id,
        "module_id": module_id,
        "attachments": _attachments(a.dict() for a in data.attachments),
        "submissions": 0,
        "submitted_by": [],
        "created_by": creator_id,
        "created_at": now,
        "updated_at": now
    }

    try:
        result = await db.assignments.insert_one(assignment)
    except DuplicateKeyError:
        raise Conflict(DUPLICATE_TITLE)

    assignment["_id"] = result.inserted_id
    logger.info(f"✅ Assignment created: {data.title}")
    return serialize_doc(assignment)

async def list_assignments(
    db,
    course_id: Optional[str] = None,
    module_id: Optional[str] = None
) -> List[dict]:
    query = {}
    if course_id:
        query["course_id"] = to_object_id(course_id, "course ID")
    if module_id:
        query["module_id"] = to_object_id(module_id, "module ID")

    assignments = await db.assignments.find(query).sort("due_date", 1).to_list(length=None)
    return await _with_titles(db, assignments)

async def get_assignment(db, assignment_id: str) -> dict:
    assignment = await load_assignment(db, assignment_id)
    return (await _with_titles(db, [assignment]))[0]

async def update_assignment(db, uploader, assignment_id: str, data: AssignmentUpdate) -> dict:
    """
    Partial merge

    Raises:
        404: Assignment, or the new course/module, not found
        409: Linkage change after submissions, or duplicate title
    """
    existing = await load_assignment(db, assignment_id)
    updates = clean_fields(data.dict(exclude_unset=True, exclude={"attachments"}))

    course_id = existing["course_id"]
    module_id = existing["module_id"]
    if "course_id" in updates:
        course_id = to_object_id(updates["course_id"], "course ID")
        updates["course_id"] = course_id
    if "module_id" in updates:
        module_id = to_object_id(updates["module_id"], "module ID")
        updates["module_id"] = module_id

    course_changed = course_id != existing["course_id"]
    module_changed = module_id != existing["module_id"]

    if existing.get("submissions", 0) > 0:
        if course_changed:
            raise Conflict("Cannot change course after submissions have been made")
        if module_changed:
            raise Conflict("Cannot change module after submissions have been made")

    if course_changed or module_changed:
        await _ensure_linkage(db, course_id, module_id)

    title = updates.get("title", existing.get("title"))
    if course_changed or module_changed or title != existing.get("title"):
        await _ensure_title_available(db, course_id, module_id, title, exclude_id=existing["_id"])

    removed = []
    if data.attachments is not None:
        attachments = _attachments(a.dict() for a in data.attachments)
        kept = {a["public_id"] for a in attachments if a.get("public_id")}
        removed = [
            a for a in existing.get("attachments", [])
            if _attachment_id(a) and _attachment_id(a) not in kept
        ]
        updates["attachments"] = attachments

    updates["updated_at"] = utcnow()
    try:
        await db.assignments.update_one({"_id": existing["_id"]}, {"$set": updates})
    except DuplicateKeyError:
        raise Conflict(DUPLICATE_TITLE)

    # Provider clean-up only after the document no longer references the files
    await _purge_attachments(uploader, removed)

    return await get_assignment(db, assignment_id)

async def delete_assignment(db, uploader, assignment_id: str) -> None:
    """
    Raises:
        409: Submissions exist (document left untouched)
    """
    assignment = await load_assignment(db, assignment_id)
    if assignment.get("submissions", 0) > 0:
        raise Conflict("Cannot delete assignment with existing submissions")

    result = await db.assignments.delete_one({"_id": assignment["_id"]})
    if result.deleted_count == 0:
        raise NotFound("Assignment not found")

    await _purge_attachments(uploader, assignment.get("attachments", []))
    logger.info(f"Assignment {assignment_id} deleted")

async def delete_attachment(uploader, public_id: str) -> None:
    if not await uploader.delete(public_id):
        raise GatewayError("Failed to delete attachment")
