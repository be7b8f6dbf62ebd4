"""Canned HTML for the Georgia probate search, result grid and detail pages."""

SEARCH_URL = "https://georgiaprobaterecords.com/Estates/SearchEstates.aspx"
DETAIL_1 = "https://georgiaprobaterecords.com/Estates/Detail.aspx?id=1"
DETAIL_2 = "https://georgiaprobaterecords.com/Estates/Detail.aspx?id=2"
SUBMIT = 'input[id="ctl00_cpMain_btnSearch_input"]'

SEARCH_FORM = """
<form><input id="ctl00_cpMain_btnSearch_input" type="submit" value="Search"></form>
"""

RESULTS = """
<div id="ctl00_cpMain_rgEstates"><table>
<thead><tr><th>CASE</th><th>DECEDENT</th><th>FILED</th></tr></thead>
<tbody>
<tr class="rgRow"><td><a href="/Estates/Detail.aspx?id=1">2024-E-001</a></td><td>JOHN SMITH</td><td>03/14/2024</td></tr>
<tr class="rgAltRow"><td><a href="/Estates/Detail.aspx?id=2">2024-E-002</a></td><td>MARY OLDS</td><td>03/10/2024</td></tr>
<tr class="rgRow"><td>2024-E-003</td><td></td><td>03/14/2024</td></tr>
</tbody>
</table></div>
"""

RESULTS_SAME_DAY = """
<div id="ctl00_cpMain_rgEstates"><table>
<thead><tr><th>CASE</th><th>DECEDENT</th><th>FILED</th></tr></thead>
<tbody>
<tr class="rgRow"><td><a href="/Estates/Detail.aspx?id=1">2024-E-001</a></td><td>JOHN SMITH</td><td>03/14/2024</td></tr>
<tr class="rgAltRow"><td><a href="/Estates/Detail.aspx?id=2">2024-E-002</a></td><td>MARY OLDS</td><td>03/14/2024</td></tr>
</tbody>
</table></div>
"""

DETAIL_SMITH = """
<table>
  <tr><td>Petitioner</td><td>Jane Smith</td></tr>
  <tr><td>Decedent Address</td><td>123 Main St, Atlanta, GA 30301</td></tr>
  <tr><td>Filed Date</td><td>03/14/2024</td></tr>
</table>
"""

DETAIL_OLDS = """
<table>
  <tr><td>Executor</td><td>Peter Olds</td></tr>
</table>
"""


def georgia_pages():
    return {SEARCH_URL: SEARCH_FORM, DETAIL_1: DETAIL_SMITH, DETAIL_2: DETAIL_OLDS}
