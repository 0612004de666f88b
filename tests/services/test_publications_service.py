import pytest

from nakama import id as ids
from nakama.errs import Error, ErrorKind
from nakama.models import PublicationKind
from nakama.pagination import PageArgs
from nakama.services import CreateChapter, CreatePublication, UpdatePublication
from nakama.validator import ValidationErrors


@pytest.fixture()
def novel(service, make_user):
    author = make_user("writer")
    publication = service.create_publication(
        CreatePublication(kind="novel", title="  The Long Road ", description="A journey."), author.id
    )
    return author, publication


def test_create_and_update_publication(service, make_user, novel) -> None:
    author, publication = novel
    assert publication.kind is PublicationKind.NOVEL
    assert publication.title == "The Long Road"
    assert publication.user.username == "writer"

    updated = service.update_publication(publication.id, UpdatePublication(description="Revised."), author.id)
    assert updated.title == "The Long Road"
    assert updated.description == "Revised."
    assert service.publication(publication.id).description == "Revised."

    stranger = make_user("stranger")
    with pytest.raises(Error) as excinfo:
        service.update_publication(publication.id, UpdatePublication(title="Mine"), stranger.id)
    assert excinfo.value.kind is ErrorKind.PERMISSION_DENIED


def test_publication_validation(service, make_user) -> None:
    author = make_user("writer")
    with pytest.raises(ValidationErrors) as excinfo:
        service.create_publication(CreatePublication(kind="poem", title=" ", description="x" * 501), author.id)
    assert set(excinfo.value.errors) == {"kind", "title", "description"}

    with pytest.raises(Error) as excinfo:
        service.publication(ids.generate())
    assert excinfo.value.kind is ErrorKind.NOT_FOUND


def test_list_publications(service, make_user, novel) -> None:
    author, publication = novel
    other = make_user("artist")
    manga = service.create_publication(
        CreatePublication(kind=PublicationKind.MANGA, title="Blades", description="Ink."), other.id
    )

    assert [p.id for p in service.publications().items] == [manga.id, publication.id]
    assert [p.id for p in service.publications(kind="novel").items] == [publication.id]
    assert [p.id for p in service.publications(user_id=other.id).items] == [manga.id]
    assert service.publications(kind="tutorial").items == []

    with pytest.raises(Error) as excinfo:
        service.publications(kind="poem")
    assert excinfo.value.field == "kind"


def test_chapters(service, make_user, novel) -> None:
    author, publication = novel
    assert service.latest_chapter_number(publication.id) == 0

    for number in (1, 3, 2):
        service.create_chapter(
            publication.id, CreateChapter(number=number, title=f"Part {number}", content="..."), author.id
        )

    assert service.latest_chapter_number(publication.id) == 3
    assert service.chapter(publication.id, 2).title == "Part 2"

    page = service.chapters(publication.id, PageArgs(first=2))
    assert [c.number for c in page.items] == [3, 2]
    rest = service.chapters(publication.id, PageArgs(first=2, after=page.page_info.end_cursor))
    assert [c.number for c in rest.items] == [1]

    with pytest.raises(Error) as excinfo:
        service.chapter(publication.id, 9)
    assert excinfo.value.kind is ErrorKind.NOT_FOUND


def test_create_chapter_errors(service, make_user, novel) -> None:
    author, publication = novel
    service.create_chapter(publication.id, CreateChapter(number=1, title="One", content="text"), author.id)

    with pytest.raises(Error) as excinfo:
        service.create_chapter(publication.id, CreateChapter(number=1, title="Again", content="text"), author.id)
    assert excinfo.value.kind is ErrorKind.ALREADY_EXISTS
    assert excinfo.value.field == "number"

    stranger = make_user("stranger")
    with pytest.raises(Error) as excinfo:
        service.create_chapter(publication.id, CreateChapter(number=2, title="Two", content="text"), stranger.id)
    assert excinfo.value.kind is ErrorKind.PERMISSION_DENIED

    with pytest.raises(ValidationErrors) as excinfo:
        service.create_chapter(publication.id, CreateChapter(number=0, title="", content=""), author.id)
    assert set(excinfo.value.errors) == {"number", "title", "content"}
