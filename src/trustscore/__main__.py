from trustscore.main import main

main()
