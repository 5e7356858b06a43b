from gcloud_ctx.cli import main

main()
