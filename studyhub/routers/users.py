from fastapi import APIRouter, Depends

from studyhub.deps import CurrentUser, get_current_user, get_enrollment_store
from studyhub.services.enrollment_store import EnrollmentStore

router = APIRouter()


@router.get("/enrolled-courses")
async def enrolled_courses(
    user: CurrentUser = Depends(get_current_user),
    store: EnrollmentStore = Depends(get_enrollment_store),
):
    courses = await store.list_enrolled_courses(user.id)
    return {
        "success": True,
        "courses": [
            {
                "id": c.id,
                "title": c.title,
                "price": c.price,
                "instructor": c.instructor_id,
            }
            for c in courses
        ],
    }
