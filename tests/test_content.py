import packt_epub.content as content
from packt_epub.models import ImageReference


def test_remove_heading_drops_only_the_longest_h1():
    html = (
        "<h1>Short</h1>\n"
        "<p>Intro</p>\n"
        '<h1 class="title">A much longer heading than the others</h1>\n'
        "<h1>Mid size one</h1>"
    )

    result = content.remove_heading(html)

    assert result == "<h1>Short</h1>\n<p>Intro</p>\n\n<h1>Mid size one</h1>"


def test_remove_heading_handles_multiline_heading():
    html = '<h1 id="x">\n  Section\n  title\n</h1><p>Body</p>'

    assert content.remove_heading(html) == "<p>Body</p>"


def test_remove_heading_is_idempotent():
    html = '<div><h1 id="t">Getting Started</h1><p>Body</p></div>'

    once = content.remove_heading(html)
    twice = content.remove_heading(once)

    assert once == "<div><p>Body</p></div>"
    assert twice == once


def test_remove_heading_drops_empty_h1():
    assert content.remove_heading("<h1></h1><p>Body</p>") == "<p>Body</p>"


def test_remove_heading_without_h1_is_a_no_op():
    html = "<h2>Sub</h2><p>Body</p>"

    assert content.remove_heading(html) == html


def test_rewrite_resources_collapses_nested_graphics_path():
    html = '<p><img src="/graphics/A/graphics/B/pic.png"></p>'

    rewritten, refs = content.rewrite_resources(html)

    assert rewritten == '<p><img src="../images/pic.png"/></p>'
    assert refs == [ImageReference("/graphics/A/graphics/B/pic.png", "../images/pic.png")]


def test_rewrite_resources_self_closes_void_tags():
    html = 'a<br>b<br/>c<br class="x"><img src="/graphics/1/graphics/i/one.png" alt="One" />'

    rewritten, refs = content.rewrite_resources(html)

    assert rewritten == 'a<br/>b<br/>c<br class="x"/><img src="../images/one.png" alt="One"/>'
    assert [ref.target for ref in refs] == ["../images/one.png"]


def test_rewrite_resources_keeps_document_order_of_sources():
    html = (
        '<img src="/graphics/9/graphics/image/b.png">'
        '<p>text</p>'
        '<img class="fig" src="/graphics/9/graphics/image/a.jpg">'
    )

    _, refs = content.rewrite_resources(html)

    assert [ref.source for ref in refs] == [
        "/graphics/9/graphics/image/b.png",
        "/graphics/9/graphics/image/a.jpg",
    ]
    assert [ref.target for ref in refs] == ["../images/b.png", "../images/a.jpg"]


def test_rewrite_resources_without_images_returns_no_references():
    html = "<p>No pictures here</p>"

    rewritten, refs = content.rewrite_resources(html)

    assert refs == []
    assert rewritten == html


def test_fix_image_url_strips_first_graphics_segment():
    assert content.fix_image_url("/graphics/123/sub/pic.png") == "sub/pic.png"


def test_fix_image_url_leaves_remaining_path_untouched():
    path = "/graphics/9781/graphics/image/B1_01.png"

    assert content.fix_image_url(path) == "graphics/image/B1_01.png"


def test_normalize_page_applies_both_passes():
    html = '<h1>Title</h1><p>See<br>figure</p><img src="/graphics/X/graphics/Y/fig.png">'

    body, refs = content.normalize_page(html)

    assert body == '<p>See<br/>figure</p><img src="../images/fig.png"/>'
    assert refs == [ImageReference.from_source("/graphics/X/graphics/Y/fig.png")]


def test_html_to_text_flattens_markup():
    assert content.html_to_text("<p>A <b>fine</b> book.</p>") == "A fine book."
    assert content.html_to_text("") == ""
