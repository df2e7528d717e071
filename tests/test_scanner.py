import gzip

import pytest

from xml_nexus.models import NodeKind

from conftest import urlset, sitemapindex

ROOT = 'https://example.com/sitemap.xml'


@pytest.mark.asyncio
async def test_pasted_urlset_produces_one_container_with_leaves(make_scanner):
    scanner = make_scanner()
    content = urlset('https://example.com/', 'https://example.com/about')

    result = await scanner.scan_content(content, 'https://example.com')

    assert len(result.nodes) == 1
    root = result.nodes[0]
    assert root.kind == NodeKind.SITEMAP_CONTAINER.value
    assert root.depth == 0
    assert [child.url for child in root.children] == ['https://example.com/', 'https://example.com/about']
    assert all(child.kind == 'url' and child.depth == 1 for child in root.children)
    assert result.total_urls == 2
    assert result.total_sitemaps == 1
    assert result.errors == []


@pytest.mark.asyncio
async def test_empty_content_fails_with_invalid_xml(make_scanner):
    result = await make_scanner().scan_content('', 'https://example.com')

    assert result.nodes == []
    assert result.failed
    assert 'Invalid XML' in result.errors[0]


@pytest.mark.asyncio
async def test_html_page_reports_root_element(make_scanner):
    result = await make_scanner().scan_content('<!DOCTYPE html><html></html>', 'https://example.com')

    assert result.nodes == []
    assert len(result.errors) == 1
    assert 'Invalid Sitemap format' in result.errors[0]
    assert 'html' in result.errors[0]


@pytest.mark.asyncio
async def test_truncated_markup_does_not_raise(make_scanner):
    result = await make_scanner().scan_content(
        '<urlset><url><loc>https://example.com/</loc>', 'https://example.com'
    )

    assert result.nodes or result.errors
    if result.nodes:
        assert result.nodes[0].children[0].url == 'https://example.com/'


@pytest.mark.asyncio
async def test_index_is_traversed_with_children_in_listing_order(site, make_scanner):
    site.add(ROOT, """<sitemapindex>
        <sitemap><loc>https://example.com/posts.xml</loc><lastmod>2024-03-01</lastmod></sitemap>
        <sitemap><loc>https://example.com/pages.xml</loc></sitemap>
    </sitemapindex>""")
    site.add('https://example.com/posts.xml', urlset('https://example.com/p/1', 'https://example.com/p/2'))
    site.add('https://example.com/pages.xml', urlset('https://example.com/about'))

    result = await make_scanner().scan([ROOT])

    root = result.nodes[0]
    assert [child.url for child in root.children] == [
        'https://example.com/posts.xml', 'https://example.com/pages.xml'
    ]
    posts = root.children[0]
    assert posts.depth == 1
    assert posts.last_modified == '2024-03-01'
    assert [leaf.depth for leaf in posts.children] == [2, 2]
    assert result.total_sitemaps == 3
    assert result.total_urls == 3
    assert result.errors == []


@pytest.mark.asyncio
async def test_failures_are_recorded_and_siblings_still_scanned(site, make_scanner):
    site.add(ROOT, sitemapindex(
        'https://example.com/ok.xml',
        'https://example.com/missing.xml',
        'https://example.com/page.xml',
    ))
    site.add('https://example.com/ok.xml', urlset('https://example.com/'))
    site.add('https://example.com/page.xml', '<html><body>hello</body></html>',
             headers={'content-type': 'text/html'})

    result = await make_scanner().scan([ROOT])

    assert [child.url for child in result.nodes[0].children] == ['https://example.com/ok.xml']
    assert len(result.errors) == 2
    assert any('404' in error and 'missing.xml' in error for error in result.errors)
    assert any('Invalid Sitemap format' in error for error in result.errors)
    assert not result.failed


@pytest.mark.asyncio
async def test_unreachable_root_yields_empty_result(make_scanner):
    result = await make_scanner().scan([ROOT])

    assert result.nodes == []
    assert result.failed
    assert ROOT in result.errors[0]


@pytest.mark.asyncio
async def test_shared_sitemap_is_fetched_once(site, make_scanner):
    shared = 'https://example.com/shared.xml'
    site.add(ROOT, sitemapindex(shared, shared, 'https://example.com/nested.xml'))
    site.add('https://example.com/nested.xml', sitemapindex(shared))
    site.add(shared, urlset('https://example.com/a', 'https://example.com/b'))

    result = await make_scanner().scan([ROOT])

    assert site.fetched(shared) == 1
    assert result.total_urls == 2
    assert result.errors == []
    urls = [node.url for node in result.iter_nodes()]
    assert len(urls) == len(set(urls))


@pytest.mark.asyncio
async def test_duplicate_leaves_are_collapsed(make_scanner):
    content = urlset('https://example.com/', 'https://example.com/', 'https://example.com/x')

    result = await make_scanner().scan_content(content, 'https://example.com')

    assert [leaf.url for leaf in result.nodes[0].children] == ['https://example.com/', 'https://example.com/x']
    assert result.total_urls == 2


@pytest.mark.asyncio
async def test_depth_ceiling_stops_descent(site, make_scanner):
    chain = [f'https://example.com/level{i}.xml' for i in range(5)]
    for current, child in zip(chain, chain[1:]):
        site.add(current, sitemapindex(child))

    result = await make_scanner(max_depth=2).scan([chain[0]])

    assert site.fetched(chain[2]) == 1
    assert site.fetched(chain[3]) == 0
    assert max(node.depth for node in result.iter_nodes() if node.kind == 'sitemap') == 2
    deepest = result.nodes[0].children[0].children[0]
    assert deepest.url == chain[2]
    assert deepest.children == []
    assert result.errors == []


@pytest.mark.asyncio
async def test_url_ceiling_truncates_leaves(make_scanner):
    content = urlset(*[f'https://example.com/page/{i}' for i in range(10)])

    result = await make_scanner(max_urls=4).scan_content(content, 'https://example.com')

    assert result.total_urls == 4
    assert [leaf.url for leaf in result.nodes[0].children] == [
        f'https://example.com/page/{i}' for i in range(4)
    ]


@pytest.mark.asyncio
async def test_url_ceiling_spans_sibling_sitemaps(site, make_scanner):
    site.add(ROOT, sitemapindex('https://example.com/a.xml', 'https://example.com/b.xml'))
    site.add('https://example.com/a.xml', urlset(*[f'https://example.com/a/{i}' for i in range(3)]))
    site.add('https://example.com/b.xml', urlset(*[f'https://example.com/b/{i}' for i in range(3)]))

    result = await make_scanner(max_urls=4).scan([ROOT])

    leaves = [node for node in result.iter_nodes() if node.kind == 'url']
    assert result.total_urls == 4
    assert len(leaves) == 4


@pytest.mark.asyncio
async def test_concurrent_fetches_are_bounded(site, make_scanner):
    children = [f'https://example.com/part{i}.xml' for i in range(8)]
    site.add(ROOT, sitemapindex(*children))
    for i, child in enumerate(children):
        site.add(child, urlset(f'https://example.com/item/{i}'))
    site.delay = 0.02

    result = await make_scanner(max_concurrent_fetches=2).scan([ROOT])

    assert result.total_urls == 8
    assert 1 <= site.max_active <= 2


@pytest.mark.asyncio
async def test_gzip_payload_is_transparent(site, make_scanner):
    body = urlset('https://example.com/', 'https://example.com/about')
    site.add('https://example.com/plain.xml', body)
    site.add('https://example.com/packed.xml.gz', body, compress=True,
             headers={'content-type': 'application/x-gzip'})

    plain = await make_scanner().scan(['https://example.com/plain.xml'])
    packed = await make_scanner().scan(['https://example.com/packed.xml.gz'])

    assert [n.url for n in plain.nodes[0].children] == [n.url for n in packed.nodes[0].children]
    assert packed.errors == []


@pytest.mark.asyncio
async def test_scanner_reuse_does_not_carry_state(site, make_scanner):
    site.add(ROOT, urlset('https://example.com/', 'https://example.com/about'))
    scanner = make_scanner()

    first = await scanner.scan([ROOT])
    second = await scanner.scan([ROOT])

    assert second.model_dump() == first.model_dump()
    assert second.total_urls == 2


@pytest.mark.asyncio
async def test_progress_reports_leaves_before_their_container(site, make_scanner):
    site.add(ROOT, sitemapindex('https://example.com/a.xml'))
    site.add('https://example.com/a.xml', urlset('https://example.com/1', 'https://example.com/2'))
    seen = []

    result = await make_scanner().scan([ROOT], on_progress=seen.append)

    assert [node.url for node in seen] == [
        'https://example.com/1',
        'https://example.com/2',
        'https://example.com/a.xml',
        ROOT,
    ]
    assert all(node.children is None for node in seen)
    # The returned tree still holds the children
    assert len(result.nodes[0].children[0].children) == 2


@pytest.mark.asyncio
async def test_async_progress_callback_is_awaited(make_scanner):
    seen = []

    async def on_progress(node):
        seen.append(node.url)

    await make_scanner().scan_content(urlset('https://example.com/'), 'https://example.com', on_progress)

    assert seen == ['https://example.com/', 'https://example.com']


@pytest.mark.asyncio
async def test_legacy_export_is_flattened_to_leaves(make_scanner):
    content = """<export>
        <node props='{"path": "/content/en/home"}'/>
        <node props='{"path": "/content/en/report.pdf"}'/>
    </export>"""

    result = await make_scanner().scan_content(content, 'https://example.com/export.xml')

    assert [leaf.url for leaf in result.nodes[0].children] == [
        'https://example.com/en/home.html',
        'https://example.com/en/report.pdf',
    ]
    assert result.total_sitemaps == 1


@pytest.mark.asyncio
async def test_scan_processes_multiple_roots_in_order(site, make_scanner):
    site.add('https://example.com/a.xml', urlset('https://example.com/1'))
    site.add('https://example.com/b.xml', urlset('https://example.com/2'))

    result = await make_scanner().scan(['https://example.com/a.xml', 'https://example.com/b.xml'])

    assert [node.url for node in result.nodes] == ['https://example.com/a.xml', 'https://example.com/b.xml']
    assert result.total_urls == 2


LATIN1_URLSET = (
    '<?xml version="1.0" encoding="ISO-8859-1"?>'
    '<urlset><url><loc>https://example.com/café</loc></url></urlset>'
)


@pytest.mark.asyncio
async def test_fetched_sitemap_honours_declared_encoding(site, make_scanner):
    site.add(ROOT, LATIN1_URLSET.encode('latin-1'))

    result = await make_scanner().scan([ROOT])

    assert [leaf.url for leaf in result.nodes[0].children] == ['https://example.com/café']
    assert result.errors == []


@pytest.mark.asyncio
async def test_pasted_text_with_foreign_declaration_keeps_characters(make_scanner):
    result = await make_scanner().scan_content(LATIN1_URLSET, 'https://example.com')

    assert [leaf.url for leaf in result.nodes[0].children] == ['https://example.com/café']


@pytest.mark.asyncio
async def test_undecodable_export_child_does_not_abort_siblings(site, make_scanner):
    site.add(ROOT, sitemapindex('https://example.com/export.xml', 'https://example.com/ok.xml'))
    site.add('https://example.com/export.xml', "<export><node props='" + "[" * 200000 + "'/></export>")
    site.add('https://example.com/ok.xml', urlset('https://example.com/'))

    result = await make_scanner().scan([ROOT])

    assert [child.url for child in result.nodes[0].children] == ['https://example.com/ok.xml']
    assert len(result.errors) == 1
    assert 'Invalid Sitemap format' in result.errors[0]
    assert '<export>' in result.errors[0]


@pytest.mark.asyncio
async def test_corrupt_gzip_child_is_recorded(site, make_scanner):
    broken = 'https://example.com/broken.xml.gz'
    site.add(ROOT, sitemapindex(broken, 'https://example.com/ok.xml'))
    site.add(broken, gzip.compress(urlset('https://example.com/lost').encode())[:12],
             headers={'content-type': 'application/x-gzip'})
    site.add('https://example.com/ok.xml', urlset('https://example.com/'))

    result = await make_scanner().scan([ROOT])

    assert [child.url for child in result.nodes[0].children] == ['https://example.com/ok.xml']
    assert result.total_urls == 1
    assert len(result.errors) == 1
    assert f'Failed to decompress {broken}' in result.errors[0]
