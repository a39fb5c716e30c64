from cfnscript.cli import main

main()
