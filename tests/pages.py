"""Problem page fixtures and response builders shared by the tests."""

from __future__ import annotations

import httpx

PROBLEM_HTML = """<!DOCTYPE html>
<html lang="ko">
<head><title>1000번: A+B</title></head>
<body>
<span id="problem_title">A+B</span>
<div id="problem-info"><table><tr><td>2 초</td><td>128 MB</td></tr></table></div>
<div id="problem_description">\t<p>두 정수 A와 B를 입력받은 다음, A+B를 출력하는 프로그램을 작성하시오.</p>
\t<img src="/upload/images/plus.png"><img src="https://cdn.example.com/x.png"></div>
<div id="problem_input">\t<p>첫째 줄에 A와 B가 주어진다.</p></div>
<div id="problem_output">\t<p>첫째 줄에 A+B를 출력한다.</p></div>
<div id="problem_limit">\t<p>0 &lt; A, B &lt; 10</p></div>
<pre id="sample-input-1">1 2
</pre>
<pre id="sample-output-1">3
</pre>
<div id="sample_explain_1"><p>1 + 2 = 3</p></div>
<pre id="sample-input-2">3 4
</pre>
<pre id="sample-output-2">7
</pre>
<div id="problem_hint"><p>Use 64-bit integers if you like.</p></div>
<div id="source"><ul><li>Made by <a href="/user/baekjoon">baekjoon</a></li></ul></div>
</body>
</html>
"""

NO_DESCRIPTION_HTML = """<html><body>
<span id="problem_title">Broken</span>
<div id="problem_input"><p>input</p></div>
</body></html>
"""


def page(body: str) -> str:
    """Wrap *body* in a minimal page that has a description block."""
    return (
        "<html><body>"
        '<span id="problem_title">T</span>'
        '<div id="problem_description"><p>D</p></div>'
        f"{body}"
        "</body></html>"
    )


def html_response(html: str = PROBLEM_HTML, status_code: int = 200) -> httpx.Response:
    """Build an HTML response with a UTF-8 body."""
    return httpx.Response(
        status_code,
        content=html.encode("utf-8"),
        headers={"content-type": "text/html; charset=utf-8"},
    )
