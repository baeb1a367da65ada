from gpx_trainer.cli import main

main()
