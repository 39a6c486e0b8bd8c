from conftest import FakePage

from notebooklm_bridge.session import (
    GLOBAL_TOKEN_JS,
    LIST_NOTEBOOKS_JS,
    NOTEBOOK_TITLE_JS,
    SCRIPT_TEXTS_JS,
    LocationKind,
    TargetSessionLocator,
    TargetSessionState,
    classify_location,
    find_token_in_markup,
    find_token_in_scripts,
)


def test_classify_list_page():
    assert classify_location("https://notebooklm.google.com/") == (LocationKind.LIST, None)
    assert classify_location("https://notebooklm.google.com") == (LocationKind.LIST, None)


def test_classify_notebook_page():
    kind, container_id = classify_location("https://notebooklm.google.com/notebook/abc-123?authuser=0")
    assert kind is LocationKind.INSIDE_CONTAINER
    assert container_id == "abc-123"


def test_classify_other_pages():
    assert classify_location("https://notebooklm.google.com/settings")[0] is LocationKind.UNKNOWN
    assert classify_location("https://accounts.google.com/notebook/x")[0] is LocationKind.UNKNOWN


def test_token_from_scripts():
    scripts = ["var a = 1;", 'window.WIZ_global_data = {"SNlM0e":"AF1_xyz:1718","other":"v"};']
    assert find_token_in_scripts(scripts) == "AF1_xyz:1718"
    assert find_token_in_scripts(["nothing here"]) is None


def test_token_from_markup():
    assert find_token_in_markup("<script>x = {'SNlM0e': 'AF1_abc'}</script>") == "AF1_abc"
    assert find_token_in_markup("<html></html>") is None


def test_not_ready_reasons():
    listing = TargetSessionState(LocationKind.LIST)
    no_token = TargetSessionState(LocationKind.INSIDE_CONTAINER, container_id="nb")

    assert listing.not_ready_reason() == "no notebook is open"
    assert no_token.not_ready_reason() is None
    assert no_token.not_ready_reason(need_token=True) == "session token not found on page"


def test_state_on_list_page_reads_nothing_else():
    page = FakePage(url="https://notebooklm.google.com/")
    state = TargetSessionLocator(page).current_state()

    assert state.location_kind is LocationKind.LIST
    assert not state.inside_container
    assert page.calls == []


def test_state_inside_notebook():
    page = FakePage()
    page.on(SCRIPT_TEXTS_JS, ['{"SNlM0e":"AF1_tok"}'])
    page.on(NOTEBOOK_TITLE_JS, "Research")

    state = TargetSessionLocator(page).current_state()

    assert state.inside_container
    assert state.container_id == "nb-123"
    assert state.auth_token == "AF1_tok"
    assert state.container_title == "Research"


def test_token_extraction_priority():
    page = FakePage(html='<script>"SNlM0e":"from-markup"</script>')
    page.on(SCRIPT_TEXTS_JS, ["no token"])
    page.on(GLOBAL_TOKEN_JS, "from-global")
    assert TargetSessionLocator(page).extract_auth_token() == "from-global"

    page.on(GLOBAL_TOKEN_JS, None)
    assert TargetSessionLocator(page).extract_auth_token() == "from-markup"

    page.html = ""
    assert TargetSessionLocator(page).extract_auth_token() is None


def test_list_containers_skips_create_card():
    page = FakePage(url="https://notebooklm.google.com/")
    page.on(
        LIST_NOTEBOOKS_JS,
        [
            {"id": "nb-1", "title": "Thesis", "url": "/notebook/nb-1"},
            {"id": None, "title": "새 노트북 만들기", "url": ""},
            {"id": None, "title": "Reading list", "url": "", "cardIndex": 2},
        ],
    )

    notebooks = TargetSessionLocator(page).list_containers()

    assert [nb.title for nb in notebooks] == ["Thesis", "Reading list"]
    assert notebooks[0].url == "https://notebooklm.google.com/notebook/nb-1"
    assert notebooks[1].id is None
