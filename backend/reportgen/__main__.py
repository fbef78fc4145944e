from reportgen.main import run

run()
