from wiki_harvester.rewrite import rewrite_content_html

PAGE_URL = "https://wiki.example/Margit"
MAPPING = {
    "https://wiki.example/images/a.jpg": "images/margit/a.jpg",
    "https://wiki.example/images/bg.jpg": "images/margit/bg.jpg",
}


def test_img_src_is_flattened_to_local_path():
    html = (
        '<p><img src="https://wiki.example/images/a.jpg" '
        'srcset="https://wiki.example/images/a.jpg 1x, https://wiki.example/images/a2.jpg 2x"></p>'
    )
    assert rewrite_content_html(html, PAGE_URL, MAPPING) == '<p><img src="images/margit/a.jpg"></p>'


def test_relative_and_lazy_sources_resolve_against_page_url():
    assert (
        rewrite_content_html('<img src="/images/a.jpg">', PAGE_URL, MAPPING)
        == '<img src="images/margit/a.jpg">'
    )
    lazy = '<img src="data:image/gif;base64,AAAA" data-src="/images/a.jpg">'
    assert rewrite_content_html(lazy, PAGE_URL, MAPPING) == '<img src="images/margit/a.jpg">'


def test_srcset_entry_is_enough_to_match():
    html = '<img srcset="/images/small.jpg 1x, /images/a.jpg 2x" alt="A">'
    result = rewrite_content_html(html, PAGE_URL, MAPPING)
    assert 'src="images/margit/a.jpg"' in result
    assert "srcset" not in result
    assert 'alt="A"' in result


def test_inline_style_urls_are_rewritten():
    html = "<div style=\"background: url('/images/bg.jpg') no-repeat\"></div>"
    assert (
        rewrite_content_html(html, PAGE_URL, MAPPING)
        == '<div style="background: url(images/margit/bg.jpg) no-repeat"></div>'
    )


def test_picture_sources_are_dropped_once_localized():
    html = '<picture><source srcset="/images/a.jpg 2x"><img src="/images/a.jpg"></picture>'
    assert (
        rewrite_content_html(html, PAGE_URL, MAPPING)
        == '<picture><img src="images/margit/a.jpg"></picture>'
    )


def test_link_and_meta_image_references():
    html = (
        '<link rel="image_src" href="/images/a.jpg">'
        '<link rel="stylesheet" href="/images/a.jpg">'
        '<meta property="og:image" content="https://wiki.example/images/bg.jpg">'
    )
    result = rewrite_content_html(html, PAGE_URL, MAPPING)
    assert '<link rel="image_src" href="images/margit/a.jpg">' in result
    assert '<link rel="stylesheet" href="/images/a.jpg">' in result
    assert '<meta property="og:image" content="images/margit/bg.jpg">' in result


def test_unmapped_content_is_returned_untouched():
    html = '<p>Fish &amp; chips<IMG SRC="/images/other.png"/></p>'
    assert rewrite_content_html(html, PAGE_URL, MAPPING) == html


def test_empty_inputs_pass_through():
    assert rewrite_content_html("", PAGE_URL, MAPPING) == ""
    assert rewrite_content_html("<p>x</p>", PAGE_URL, {}) == "<p>x</p>"
