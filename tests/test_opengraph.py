from nakama.opengraph import OpenGraph, parse

ARTICLE = """
<html><head>
  <meta property="og:title" content="Nakama">
  <meta property="og:description" content="A place for friends">
  <meta property="og:type" content="website">
  <meta property="og:site_name" content="Nakama One">
  <meta property="og:image" content="https://nakama.one/a.png">
  <meta property="og:image:width" content="1200">
  <meta property="og:image:height" content="630">
  <meta property="og:image:alt" content="Logo">
  <meta property="og:image" content="https://nakama.one/b.png">
  <meta property="og:image:secure_url" content="https://cdn.nakama.one/b.png">
  <meta property="og:image:width" content="not a number">
  <meta property="og:image:type" content="image/png">
</head></html>
"""


def test_parse_images_in_order() -> None:
    og = parse(ARTICLE, "https://nakama.one/")
    assert og.title == "Nakama"
    assert og.description == "A place for friends"
    assert og.type == "website"
    assert og.site_name == "Nakama One"
    assert og.url == "https://nakama.one/"

    first, second = og.images
    assert (first.url, first.width, first.height, first.alt) == ("https://nakama.one/a.png", 1200, 630, "Logo")
    assert second.url == "https://nakama.one/b.png"
    assert second.secure_url == "https://cdn.nakama.one/b.png"
    assert second.width == 0
    assert second.type == "image/png"


def test_image_attribute_before_image_opens_record() -> None:
    og = parse('<meta property="og:image:url" content="https://x.test/i.png">', "https://x.test")
    assert [image.url for image in og.images] == ["https://x.test/i.png"]


def test_fallbacks_to_plain_html() -> None:
    html = """
    <html><head>
      <title> Plain page </title>
      <meta name="description" content="Nothing fancy">
      <link rel="canonical" href="https://www.example.com/page">
    </head></html>
    """
    og = parse(html, "https://www.example.com/page?ref=1")
    assert og.title == "Plain page"
    assert og.description == "Nothing fancy"
    assert og.url == "https://www.example.com/page"
    assert og.site_name == "example.com"


def test_empty_document() -> None:
    og = parse("", "https://example.com")
    assert og.url == "https://example.com"
    assert og.site_name == "example.com"
    assert OpenGraph().is_empty()
    assert not og.is_empty()
