
CACHE_FILENAME = ".link-checker"
DEFAULT_INDEX_FILE = "README.md"
DEFAULT_GITHUB_API_ROOT = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"

FIXABLE_ISSUE_TYPES = [
    "redirected",
    "missing_anchor",
    "empty_anchor",
    "wrong_extension",
    "disallow_extension",
]

ISSUE_TYPES = [
    "unknown_link_format",
    "empty_dom",
    "empty_anchor",
    "no_response",
    "not_ok_response",
    "disallow_extension",
    "wrong_extension",
    "linked_file_not_found",
    "redirected",
    "missing_anchor",
    "missing_github_comment",
    "local_alt_available",
    "inaccessible",
]

WARNING_ISSUE_TYPES = ["inaccessible"]

# Known non-OK responses that are expected (login walls and similar).
ACCEPTABLE_NOT_OK_STATUS = {
    "https://dash.cloudflare.com/login": 403,
    "https://dash.cloudflare.com/?account=workers": 403,
    "https://api.telegram.org/file/bot": 404,
}

VALID_REDIRECTIONS = {
    "https://localtunnel.me/": "https://theboroer.github.io/localtunnel-www/",
    "https://nodejs.org/": "https://nodejs.org/en",
    "https://api.telegram.org/": "https://core.telegram.org/bots",
    "https://telegram.me/name-of-your-bot?start=custom-payload": "https://telegram.org/",
    "http://telegram.me/addstickers/": "https://telegram.org/",
}

# The redirect target of these is meaningful on its own, so it must not be followed.
MANUAL_REDIRECTIONS = [
    "https://accounts.google.com/signup",
]

# Websites behind Cloudflare's DDoS protection (fnmatch globs).
CLOUDFLARE_PROTECTED_HOSTNAMES = [
    "*.cloudflare.com",
]

IGNORED_DIRECTORIES = [
    "node_modules",
]

FETCH_HEADERS = {
    "User-Agent": "Mozilla/5.0 (X11; Linux x86_64; rv:109.0) Gecko/20100101 Firefox/113.0",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Pragma": "no-cache",
    "Cache-Control": "no-cache",
}

SEARCH_PANIC_MESSAGE = """\
====================================================================================
PANIC. This shouldn't be happening. The search strings are supposed to have at least
one occurrence in the corresponding file. Please report this issue with the file,
the search string and the issue details printed above.
===================================================================================="""

ISSUE_TITLES = {
    "empty_dom": "Empty DOM content",
    "redirected": "Redirections",
    "no_response": "Empty responses",
    "empty_anchor": "Empty anchors",
    "missing_anchor": "Missing anchors",
    "missing_github_comment": "Missing GitHub comments",
    "not_ok_response": "Non-OK responses",
    "wrong_extension": "Wrong extensions",
    "disallow_extension": "Disallowed extensions",
    "unknown_link_format": "Unknown link type",
    "linked_file_not_found": "Missing files",
    "local_alt_available": "Local alternative available",
    "inaccessible": "Inaccessible website",
}

ISSUE_DESCRIPTIONS = {
    "unknown_link_format": (
        "The links highlighted seem to be an invalid type of link. Please check the source "
        "files and correct the hyperlinks involved."
    ),
    "empty_dom": (
        "The HTML document returned by the request couldn't be parsed properly. Either the "
        "request returned nothing, or it was an invalid type of content. This issue must be "
        "investigated and the links should be updated accordingly."
    ),
    "not_ok_response": (
        "The following links returned documents with non-OK response status codes. "
        "The corresponding status codes are provided with them."
    ),
    "wrong_extension": (
        "Local relative links to another file shouldn't be ending with an extension as "
        "configured. All links that don't follow this limit are listed below."
    ),
    "linked_file_not_found": "The files linked do not exist at the given paths.",
    "redirected": "The links were redirected to a newer page or some other page according to the responses.",
    "missing_anchor": "Some links were pinned with an anchor, but the linked document doesn't have such an anchor.",
    "missing_github_comment": (
        "Some links reference a specific GitHub issue comment by its anchor (issuecomment-<id>). "
        "That comment no longer exists or is not returned by the GitHub API. Update or remove these links."
    ),
    "empty_anchor": "Restricts linking pages with no anchor destination. In other words, just '#'.",
    "no_response": (
        "The following links do not return any response (probably timed out). This could be a "
        "network issue, an internal server issue, or the page doesn't exist at all."
    ),
    "disallow_extension": (
        "Some local files are linked with an extension, and the use of extensions while linking "
        "local documents is prohibited. Remove the following extensions."
    ),
    "local_alt_available": (
        "There are local alternatives available for the following links, and they should be "
        "replaced with the local alternatives."
    ),
    "inaccessible": (
        "The external link is inaccessible to the tool. It is advised to check out the site "
        "manually and take actions if necessary."
    ),
}
