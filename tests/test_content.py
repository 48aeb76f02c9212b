from wiki_harvester.content import extract_content, pick_best_from_srcset
from wiki_harvester.models import Heading

PAGE_URL = "https://wiki.example/Margit"

MARGIT_HTML = """<!DOCTYPE html>
<html><head>
<title>Margit, the Fell Omen &amp; Friends</title>
<meta name="description" content="Boss guide">
<meta name="keywords" content="Bosses, Stormveil, Bosses">
<meta property="og:image" content="https://wiki.example/images/og.png">
<link rel="image_src" href="/images/share.jpg">
</head><body>
<h1>Margit <small>the Fell Omen</small></h1>
<a href="#top">top</a><a href="/Godrick">Godrick</a><a href="">empty</a>
<div id="mw-content-text"><div class="mw-parser-output">
<h2>Location <span>info</span></h2>
<script>alert(1)</script>
<p onclick="steal()">Margit guards Stormveil.</p>
<img src="/images/Margit.png" alt="Margit portrait">
<img data-src="/images/lazy.png" src="data:image/gif;base64,AAAA" alt="Lazy">
<img srcset="/images/a.png 1x, /images/b.png 2x">
<div style="background: url('/images/bg.jpg')"></div>
<iframe src="https://ads.example/frame"></iframe>
<h3></h3>
</div></div>
<aside class="portable-infobox pi-theme"><h2>Margit</h2></aside>
<div id="catlinks"><a href="/Special:Categories">Categories</a>: <a href="/Category:Bosses">Bosses</a></div>
</body></html>
"""


def test_metadata_fields():
    page = extract_content(MARGIT_HTML, PAGE_URL)
    assert page.title == "Margit, the Fell Omen & Friends"
    assert page.description == "Boss guide"
    assert page.h1 == "Margit the Fell Omen"


def test_links_skip_empty_and_fragment_only_hrefs():
    page = extract_content(MARGIT_HTML, PAGE_URL)
    assert page.links == ["/Godrick", "/Special:Categories", "/Category:Bosses"]


def test_image_candidates_in_priority_order():
    page = extract_content(MARGIT_HTML, PAGE_URL)
    assert [image.url for image in page.images] == [
        "/images/Margit.png",
        "/images/lazy.png",
        "/images/b.png",
        "https://wiki.example/images/og.png",
        "/images/share.jpg",
        "/images/bg.jpg",
    ]
    assert page.images[0].alt == "Margit portrait"
    assert page.images[1].alt == "Lazy"
    assert page.images[2].alt is None


def test_content_block_is_sanitized():
    page = extract_content(MARGIT_HTML, PAGE_URL)
    assert "Margit guards Stormveil." in page.content_html
    assert "<script" not in page.content_html
    assert "<iframe" not in page.content_html
    assert "onclick" not in page.content_html
    assert page.content_text == "Location info Margit guards Stormveil."
    assert page.excerpt == page.content_text


def test_headings_come_from_content_block_only():
    page = extract_content(MARGIT_HTML, PAGE_URL)
    assert page.headings == [Heading(level=2, text="Location info")]


def test_infobox_and_categories():
    page = extract_content(MARGIT_HTML, PAGE_URL)
    assert page.infobox_html.startswith('<aside class="portable-infobox pi-theme">')
    assert page.categories == ["Categories", "Bosses", "Stormveil"]


def test_missing_content_block_leaves_fields_absent():
    page = extract_content("<html><body><p>Just text</p></body></html>", PAGE_URL)
    assert page.title == PAGE_URL
    assert page.content_html is None
    assert page.content_text is None
    assert page.excerpt is None
    assert page.headings == []


def test_content_container_priority():
    html = (
        "<article>article text</article>"
        '<div class="wiki-body">generic</div>'
        '<div class="mw-parser-output">parser output</div>'
    )
    page = extract_content(html, PAGE_URL)
    assert page.content_text == "parser output"

    page = extract_content('<div class="wikitext">generic</div><article>article text</article>', PAGE_URL)
    assert page.content_text == "article text"

    page = extract_content('<div id="wiki-content-block"><p>fextra</p></div>', PAGE_URL)
    assert page.content_text == "fextra"


def test_excerpt_is_capped():
    html = '<div id="mw-content-text"><p>' + "word " * 400 + "</p></div>"
    page = extract_content(html, PAGE_URL)
    assert len(page.excerpt) == 600
    assert len(page.content_text) > 600


def test_wiki_table_infobox():
    html = '<table class="wiki_table"><tr><td>Stats</td></tr></table>'
    page = extract_content(html, PAGE_URL)
    assert page.infobox_html.startswith('<table class="wiki_table">')


def test_srcset_only_image_picks_highest_descriptor():
    page = extract_content('<img srcset="a.png 1x, b.png 2x">', PAGE_URL)
    assert [image.url for image in page.images] == ["b.png"]


def test_pick_best_from_srcset():
    assert pick_best_from_srcset("a.png 1x, b.png 2x") == "b.png"
    assert pick_best_from_srcset("small.png 320w, large.png 1024w, mid.png 640w") == "large.png"
    assert pick_best_from_srcset("first.png 2x, second.png 2x") == "first.png"
    assert pick_best_from_srcset("only.png") == "only.png"
    assert pick_best_from_srcset(" , ") is None


def test_duplicate_candidates_keep_first_known_alt():
    html = '<img src="/a.png"><img src="/a.png" alt="Second"><img src="/a.png" alt="Third">'
    page = extract_content(html, PAGE_URL)
    assert len(page.images) == 1
    assert page.images[0].alt == "Second"


def test_entity_quoted_css_url_is_unwrapped():
    html = '<div id="mw-content-text"><div style="background:url(&quot;/images/bg.png&quot;)"></div></div>'
    page = extract_content(html, PAGE_URL)
    assert [image.url for image in page.images] == ["/images/bg.png"]
