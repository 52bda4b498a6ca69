# ellarises/api/pages.py
"""Static public pages."""
from fastapi import APIRouter, Request

from ellarises.web import render

router = APIRouter(tags=["Pages"])


@router.get("/")
def home(request: Request):
    return render(request, "index.html")


@router.get("/about")
def about(request: Request):
    return render(
        request,
        "page.html",
        title="About Ella Rises",
        paragraphs=[
            "Ella Rises connects young women with mentors, workshops and summits "
            "that open doors in STEAM and leadership.",
            "Volunteers, donors and sponsors keep every program free for participants.",
        ],
    )


@router.get("/contact")
def contact(request: Request):
    return render(
        request,
        "page.html",
        title="Contact",
        paragraphs=["Email hello@ellarises.org and a team member will get back to you."],
    )


@router.get("/privacy")
def privacy(request: Request):
    # 418 kept as the page's status
    return render(
        request,
        "page.html",
        status_code=418,
        title="I'm a teapot",
        paragraphs=["We do not sell or share your personal information."],
    )
