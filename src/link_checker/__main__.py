from link_checker.main import app

app(prog_name="link-checker")
